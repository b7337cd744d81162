"""
ml: Neuroevolution
===================

Modules
-------
network
    :class:`NeuralNetwork` fixed-topology ``tanh`` controller with
    ``clone`` / ``mutate``.
fitness
    :func:`score` scoring policy.
trainer
    :class:`EvolutionaryTrainer` generational loop with elitism,
    escalating mutation and stagnation / timeout termination.
history
    :class:`TrainingHistory` per-generation stats exported via pandas.
"""
