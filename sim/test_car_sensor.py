#!/usr/bin/env python3
"""
Agent tests: kinematics, damage assessment and ray-fan perception.
"""

from __future__ import annotations

import math
import unittest

from geometry import Point, Polygon, Segment
from geometry.ops import distance, segments_to_array
from sim.car import Car, Controls, DamageType
from sim.physics import advance, apply_throttle, heading_for, steer
from sim.policy import CarPolicy, SensorPolicy
from sim.sensor import Sensor

# Straight corridor along -y, 100 units wide.
CORRIDOR = [
    Segment(Point(-50, 100), Point(-50, -5000)),
    Segment(Point(50, 100), Point(50, -5000)),
]


class FixedBrain:
    def __init__(self, outputs) -> None:
        self.outputs = list(outputs)
        self.calls = 0

    def feed_forward(self, inputs):
        self.calls += 1
        return self.outputs


class PhysicsTests(unittest.TestCase):
    def test_throttle_caps_and_friction(self) -> None:
        policy = CarPolicy()
        speed = 0.0
        for _ in range(100):
            speed = apply_throttle(speed, True, False, policy)
        self.assertAlmostEqual(speed, policy.max_speed - policy.friction)

        speed = 0.0
        for _ in range(100):
            speed = apply_throttle(speed, False, True, policy)
        self.assertAlmostEqual(speed, -policy.max_speed / 2 + policy.friction)

        self.assertEqual(apply_throttle(0.03, False, False, policy), 0.0)

    def test_steering_needs_motion_and_flips_in_reverse(self) -> None:
        self.assertEqual(steer(0.0, 0.0, True, False, 0.1), 0.0)
        self.assertAlmostEqual(steer(0.0, 1.0, True, False, 0.1), 0.1)
        self.assertAlmostEqual(steer(0.0, -1.0, True, False, 0.1), -0.1)

    def test_heading_for_points_motion_along_direction(self) -> None:
        for direction in (Point(1, 0), Point(0, -1), Point(-0.6, 0.8)):
            x, y = advance(0.0, 0.0, heading_for(direction), 10.0)
            self.assertAlmostEqual(x, direction.x * 10.0)
            self.assertAlmostEqual(y, direction.y * 10.0)


class SensorTests(unittest.TestCase):
    def test_ray_offset_matches_wall_distance(self) -> None:
        car = Car(0, 0, sensor_policy=SensorPolicy(ray_count=1, ray_length=150))
        wall = segments_to_array([Segment(Point(-100, -60), Point(100, -60))])
        car.sensor.update(car, wall)
        reading = car.sensor.readings[0]
        self.assertIsNotNone(reading)
        self.assertAlmostEqual(reading.offset, 60 / 150)
        self.assertAlmostEqual(reading.y, -60.0)
        self.assertAlmostEqual(car.sensor.inputs()[0], 1 - 60 / 150)

    def test_clear_rays_read_zero(self) -> None:
        sensor = Sensor(SensorPolicy(ray_count=3))
        car = Car(0, 0)
        behind = segments_to_array([Segment(Point(-100, 60), Point(100, 60))])
        sensor.update(car, behind)
        self.assertEqual(sensor.readings, [None, None, None])
        self.assertEqual(sensor.inputs(), [0.0, 0.0, 0.0])

    def test_fan_is_centred_on_heading(self) -> None:
        sensor = Sensor(SensorPolicy(ray_count=5, ray_length=100, ray_spread=math.pi / 2))
        sensor.update(Car(0, 0, angle=heading_for(Point(1, 0))), segments_to_array([]))
        self.assertEqual(len(sensor.rays), 5)
        middle = sensor.rays[2]
        self.assertAlmostEqual(middle.p2.x, 100.0)
        self.assertAlmostEqual(middle.p2.y, 0.0)
        first, last = sensor.rays[0].p2, sensor.rays[-1].p2
        self.assertAlmostEqual(first.y, -last.y)


class CarTests(unittest.TestCase):
    def test_forward_car_closes_in_on_target(self) -> None:
        target = Point(0, -4000)
        car = Car(0, 0, brain=FixedBrain([1, 0, 0, 0]))
        car.controls = Controls(forward=True)
        policy = car.policy

        last = distance(car.position, target)
        step = 0.0
        for _ in range(120):
            car.update(CORRIDOR)
            d = distance(car.position, target)
            self.assertLess(d, last)
            step, last = last - d, d
        self.assertTrue(car.active)
        self.assertAlmostEqual(step, policy.max_speed - policy.friction)
        self.assertTrue(car.controls.forward)

    def test_border_overlap_is_a_collision(self) -> None:
        car = Car(0, 0)
        border = [Segment(Point(-100, 0), Point(100, 0))]
        car.update(border)
        self.assertTrue(car.damaged)
        self.assertIs(car.damage_type, DamageType.COLLISION)
        self.assertEqual(car.speed, 0.0)

    def test_off_road_is_checked_before_collision(self) -> None:
        car = Car(0, 0)
        border = [Segment(Point(-100, 0), Point(100, 0))]
        car.update(border, on_road=lambda p: False)
        self.assertIs(car.damage_type, DamageType.OFF_ROAD)

    def test_obstacle_overlap_is_a_collision(self) -> None:
        car = Car(0, 0)
        box = Polygon([Point(-5, -5), Point(5, -5), Point(5, 5), Point(-5, 5)])
        car.update(CORRIDOR, traffic=[box])
        self.assertIs(car.damage_type, DamageType.COLLISION)

    def test_damage_is_terminal(self) -> None:
        brain = FixedBrain([1, 0, 0, 0])
        car = Car(0, 0, brain=brain)
        car.controls = Controls(forward=True)
        car.mark_damaged(DamageType.STAGNATION)
        car.mark_damaged(DamageType.COLLISION)
        for _ in range(5):
            car.update(CORRIDOR)
        self.assertIs(car.damage_type, DamageType.STAGNATION)
        self.assertEqual((car.x, car.y), (0, 0))
        self.assertEqual(car.ticks, 0)
        self.assertEqual(brain.calls, 0)
        self.assertEqual(len(car.sensor.readings), car.sensor.ray_count)

    def test_controls_from_outputs(self) -> None:
        controls = Controls.from_outputs([0.5, -0.2, 0.0, 0.9])
        self.assertEqual(controls, Controls(forward=True, left=False, right=False, reverse=True))
        self.assertEqual(Controls.from_outputs([1.0]), Controls(forward=True))

    def test_as_dict_exposes_pose_and_state(self) -> None:
        car = Car(10, 20, car_id="c1")
        data = car.as_dict()
        self.assertEqual(data["id"], "c1")
        self.assertEqual((data["x"], data["y"]), (10, 20))
        self.assertFalse(data["damaged"])
        self.assertEqual(len(data["polygon"]), 4)


if __name__ == "__main__":
    unittest.main()
