import math

import numpy as np

from crumbnav.math3d.quaternion import (
    axis_angle_to_q,
    euler_yaw_pitch_roll_to_q,
    q_normalize,
    q_rotate_vec,
    q_to_euler_pitch_yaw_roll,
    q_to_rotmat,
    rotmat_to_q,
    yaw_to_q,
)


def test_q_normalize_zero_returns_identity():
    q = q_normalize(np.zeros(4, dtype=np.float64))
    np.testing.assert_allclose(q, np.array([1.0, 0.0, 0.0, 0.0], dtype=np.float64))


def test_axis_angle_zero_axis_returns_identity():
    q = axis_angle_to_q(np.zeros(3, dtype=np.float64), 1.0)
    np.testing.assert_allclose(q, np.array([1.0, 0.0, 0.0, 0.0], dtype=np.float64))


def test_yaw_to_q_quarter_turn_is_exact():
    v = q_rotate_vec(yaw_to_q(math.pi / 2.0), np.array([0.0, 0.0, 1.0], dtype=np.float64))
    np.testing.assert_allclose(v, np.array([1.0, 0.0, 0.0], dtype=np.float64), atol=1e-14)


def test_yaw_90_rotates_forward_to_right():
    q = euler_yaw_pitch_roll_to_q(90.0, 0.0, 0.0)
    v = q_rotate_vec(q, np.array([0.0, 0.0, 1.0], dtype=np.float64))
    np.testing.assert_allclose(v, np.array([1.0, 0.0, 0.0], dtype=np.float64), atol=1e-6)


def test_yaw_to_q_matches_euler_yaw():
    np.testing.assert_allclose(
        yaw_to_q(math.radians(35.0)), euler_yaw_pitch_roll_to_q(35.0, 0.0, 0.0), atol=1e-12
    )


def test_euler_decomposition_recovers_angles():
    q = euler_yaw_pitch_roll_to_q(30.0, 20.0, -10.0)
    pitch, yaw, roll = q_to_euler_pitch_yaw_roll(q)
    assert abs(pitch - math.radians(20.0)) < 1e-9
    assert abs(yaw - math.radians(30.0)) < 1e-9
    assert abs(roll - math.radians(-10.0)) < 1e-9


def test_euler_decomposition_stays_finite_at_gimbal_lock():
    pitch, yaw, roll = q_to_euler_pitch_yaw_roll(euler_yaw_pitch_roll_to_q(0.0, 90.0, 0.0))
    assert abs(pitch - math.pi / 2.0) < 1e-6
    assert math.isfinite(yaw) and math.isfinite(roll)


def test_rotmat_identity_to_quaternion():
    q = rotmat_to_q(np.eye(3, dtype=np.float64))
    np.testing.assert_allclose(q, np.array([1.0, 0.0, 0.0, 0.0], dtype=np.float64), atol=1e-8)


def test_rotmat_and_quaternion_agree_on_rotation():
    q = euler_yaw_pitch_roll_to_q(-120.0, 15.0, 40.0)
    R = q_to_rotmat(q)
    v = np.array([0.3, -1.2, 2.0], dtype=np.float64)
    np.testing.assert_allclose(R @ v, q_rotate_vec(q, v), atol=1e-9)
    q2 = rotmat_to_q(R)
    assert abs(abs(float(np.dot(q, q2))) - 1.0) < 1e-9
