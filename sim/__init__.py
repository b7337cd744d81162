"""
sim: Simulation core
=====================

Modules
-------
graph
    :class:`Graph` road topology with snap-on-add points.
world
    :class:`World` aggregate root, snapshots and the store helpers.
generator
    Chunked world-generation phases (envelopes, borders, buildings,
    trees, lane guides).
markings / obstacles / items
    User-placed annotations and generated scenery.
policy
    :class:`GenerationPolicy`, :class:`CarPolicy`, :class:`SensorPolicy`
    tunable constants.
physics / sensor / car
    Kinematics, ray-fan perception and the :class:`Car` agent.
osm
    OpenStreetMap import into a :class:`Graph`.
sim_bridge
    :class:`SimBridge` cooperative orchestrator used by the viewer.
"""
