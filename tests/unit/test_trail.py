"""Unit tests for TrajectoryTrail history and prediction tracking."""
import pytest

from trajectory_replay import TrajectoryFrame, TrajectoryPlayer, TrajectoryTrail


@pytest.fixture
def player(fake_clock, sample_trajectory_json):
    player = TrajectoryPlayer(base_frame_duration=1.0, clock=fake_clock)
    player.load_text(sample_trajectory_json)
    return player


def step(player, clock, frames=1):
    for _ in range(frames):
        clock.advance(1.0)
        player.tick()


class TestTrajectoryTrail:
    def test_history_follows_frames(self, player, fake_clock):
        trail = TrajectoryTrail()
        trail.attach(player)
        player.play()
        step(player, fake_clock, 2)
        assert trail.history == [(0.5, -0.5), (1.0, -1.0)]

    def test_oldest_points_dropped(self, player, fake_clock):
        trail = TrajectoryTrail(max_history_points=2)
        trail.attach(player)
        player.set_trajectory("1")
        player.play()
        step(player, fake_clock, 2)
        assert trail.history == [(0.5, -0.5), (1.0, -1.0)]
        assert trail.max_history_points == 2

    def test_trajectory_change_clears_history(self, player, fake_clock):
        trail = TrajectoryTrail()
        trail.attach(player)
        player.set_trajectory("1")
        player.play()
        step(player, fake_clock, 3)  # third step loops to trajectory "2"
        assert player.current_trajectory_id == "2"
        assert trail.history == [(1.0, 2.0)]

    def test_prediction_line(self, player):
        trail = TrajectoryTrail()
        trail.attach(player)
        player.set_trajectory("2")
        assert trail.prediction_line == [(1.0, 2.0), (1.5, 2.5), (2.0, 3.0)]

    def test_no_prediction_gives_empty_line(self, player):
        trail = TrajectoryTrail()
        trail.attach(player)
        player.set_trajectory("1")
        assert trail.prediction_line == []

    def test_prediction_pairs_shorter_sequence(self):
        trail = TrajectoryTrail()
        trail.on_frame_changed(TrajectoryFrame(x=1.0, y=1.0, predicted_x=(2.0, 3.0), predicted_y=(4.0,)))
        assert trail.prediction_line == [(1.0, 1.0), (2.0, 4.0)]

    def test_detach_stops_updates(self, player, fake_clock):
        trail = TrajectoryTrail()
        trail.attach(player)
        trail.detach()
        player.play()
        step(player, fake_clock)
        assert trail.history == []
        assert trail.current_frame is None

    def test_invalid_history_length(self):
        with pytest.raises(ValueError):
            TrajectoryTrail(max_history_points=0)
