"""
Unit tests for StateSampler ingestion and snapshots
"""

import math
import threading

import pytest

from velocity_bridge.utils.shared_state import SensorFault, StateSampler


class TestPoseIngestion:
    """Pose samples and frame anchoring"""

    def test_defaults_before_any_pose(self, sampler):
        snap = sampler.snapshot()
        assert snap.pose.position == (0.0, 0.0, 0.0)
        assert snap.pose.yaw == 0.0
        assert snap.frame is None
        assert snap.trajectory is None
        assert not snap.link.connected

    def test_first_pose_anchors_frame_and_reads_zero(self, sampler):
        sampler.update_pose((5.0, -2.0, 0.3), 0.4)
        snap = sampler.snapshot()

        assert snap.frame.position == (5.0, -2.0, 0.3)
        assert snap.frame.yaw == 0.4
        assert snap.pose.position == pytest.approx((0.0, 0.0, 0.0))
        assert snap.pose.yaw == 0.4

    def test_frame_never_changes_after_first_sample(self, sampler):
        samples = [((5.0, -2.0, 0.3), 0.4), ((6.0, -1.0, 1.3), 0.9), ((0.0, 0.0, 0.0), -2.0)]
        for pos, yaw in samples:
            sampler.update_pose(pos, yaw)
            assert sampler.snapshot().frame.position == (5.0, -2.0, 0.3)
            assert sampler.snapshot().frame.yaw == 0.4

    def test_position_reported_relative_to_reference(self, sampler):
        sampler.update_pose((5.0, -2.0, 0.3), 0.4)
        for raw in [(6.0, -1.0, 1.3), (4.5, -2.5, 0.0), (5.0, -2.0, 2.3)]:
            sampler.update_pose(raw, 0.0)
            expected = tuple(r - o for r, o in zip(raw, (5.0, -2.0, 0.3)))
            assert sampler.snapshot().pose.position == pytest.approx(expected)

    @pytest.mark.parametrize("bad", [math.nan, math.inf, -math.inf])
    def test_non_finite_pose_rejected(self, sampler, bad):
        sampler.update_pose((1.0, 1.0, 1.0), 0.0)
        with pytest.raises(SensorFault):
            sampler.update_pose((bad, 0.0, 0.0), 0.0)
        with pytest.raises(SensorFault):
            sampler.update_pose((0.0, 0.0, 0.0), bad)

        # last good sample kept
        assert sampler.snapshot().pose.position == (0.0, 0.0, 0.0)

    def test_rejected_first_pose_does_not_anchor(self, sampler):
        with pytest.raises(SensorFault):
            sampler.update_pose((math.nan, 0.0, 0.0), 0.0)
        assert sampler.snapshot().frame is None


class TestTrajectoryIngestion:
    """Trajectory latch and yaw composition"""

    def test_yaw_composed_with_reference_yaw(self, sampler):
        sampler.update_pose((0.0, 0.0, 0.0), 0.5)
        sampler.update_trajectory((1.0, 2.0, 3.0), yaw=0.2)
        assert sampler.snapshot().trajectory.yaw == pytest.approx(0.7)

    def test_trajectory_fields_and_timestamp(self, sampler, clock):
        clock.t = 42.0
        cmd = sampler.update_trajectory(
            (1.0, 2.0, 3.0),
            velocity=(0.1, 0.2, 0.3),
            acceleration=(0.0, 0.0, -0.1),
            yaw=0.0,
            yaw_rate=0.05,
        )
        assert cmd.position == (1.0, 2.0, 3.0)
        assert cmd.velocity == (0.1, 0.2, 0.3)
        assert cmd.acceleration == (0.0, 0.0, -0.1)
        assert cmd.yaw_rate == 0.05
        assert cmd.received_at == 42.0

    def test_latest_trajectory_wins(self, sampler):
        sampler.update_trajectory((1.0, 0.0, 0.0))
        sampler.update_trajectory((2.0, 0.0, 0.0))
        assert sampler.snapshot().trajectory.position == (2.0, 0.0, 0.0)

    def test_non_finite_trajectory_rejected_and_latch_unset(self, sampler):
        with pytest.raises(SensorFault):
            sampler.update_trajectory((1.0, math.nan, 0.0))
        assert sampler.snapshot().trajectory is None

    def test_goal_and_link(self, sampler):
        sampler.update_goal((1.0, 2.0, 0.0))
        sampler.update_link(True)
        snap = sampler.snapshot()
        assert snap.goal == (1.0, 2.0, 0.0)
        assert snap.link.connected


class TestSnapshotConsistency:
    """Snapshots taken while another thread writes"""

    def test_snapshot_never_mixes_updates(self):
        sampler = StateSampler()
        sampler.update_pose((0.0, 0.0, 0.0), 0.0)
        stop = threading.Event()

        def writer():
            i = 0
            while not stop.is_set():
                i += 1
                v = float(i)
                sampler.update_pose((v, v, v), 0.0)
                sampler.update_trajectory((v, v, v))

        t = threading.Thread(target=writer)
        t.start()
        try:
            for _ in range(2000):
                snap = sampler.snapshot()
                x, y, z = snap.pose.position
                assert x == y == z
                if snap.trajectory is not None:
                    tx, ty, tz = snap.trajectory.position
                    assert tx == ty == tz
        finally:
            stop.set()
            t.join()
