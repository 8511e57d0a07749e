"""
Integration tests for the keyboard controls: key presses drive a real
PlaybackHost, its engine, the dashboard and live configuration updates.
"""
import pytest
from rich.console import Console

from replay_player import PlaybackHost
from replay_player.interface import ConfigurationManager, InteractiveController, PlayerConfig, RichDashboard
from replay_player.interface.config_manager import MODE_EVENTS, MODE_TRAJECTORIES


def build_controller(config, config_dir, on_quit=None):
    host = PlaybackHost(config)
    manager = ConfigurationManager(config_dir)
    manager.current_config = host.config
    manager.add_update_callback(host.apply_config_change)

    dashboard = RichDashboard(host, console=Console(width=120, no_color=True, force_terminal=False))
    host.attach_dashboard(dashboard)
    host.load()

    controller = InteractiveController(dashboard, host, manager, on_quit=on_quit)
    dashboard.set_interactive_controller(controller)
    return controller


def logged(controller, text):
    return any(text in entry for entry in controller.dashboard.event_log)


@pytest.fixture
def events_controller(csv_file, config_dir):
    config = PlayerConfig(source_path=str(csv_file), mode=MODE_EVENTS, loop=False, speed=1.0)
    return build_controller(config, config_dir)


@pytest.fixture
def trajectories_controller(trajectory_file, config_dir):
    config = PlayerConfig(source_path=str(trajectory_file), mode=MODE_TRAJECTORIES, loop=False)
    return build_controller(config, config_dir)


class TestEventsKeys:
    @pytest.mark.asyncio
    async def test_speed_keys_update_engine_and_config(self, events_controller):
        host = events_controller.host
        assert await events_controller.handle_key("+")
        assert host.engine.speed == 1.5
        assert host.config.speed == 1.5

        await events_controller.handle_key("-")
        assert host.engine.speed == 1.0
        assert logged(events_controller, "Updated speed = 1.0")

    @pytest.mark.asyncio
    async def test_speed_stays_within_replay_limit(self, events_controller):
        for _ in range(10):
            await events_controller.handle_key("+")
        assert events_controller.host.engine.speed == 10.0

    @pytest.mark.asyncio
    async def test_loop_and_timing_toggles(self, events_controller):
        engine = events_controller.host.engine
        real_timestamps = engine.use_real_timestamps

        await events_controller.handle_key("l")
        await events_controller.handle_key("t")

        assert engine.loop is True
        assert events_controller.host.config.loop is True
        assert engine.use_real_timestamps is (not real_timestamps)

    @pytest.mark.asyncio
    async def test_digit_seeks_and_publishes(self, events_controller):
        await events_controller.handle_key("5")
        host = events_controller.host
        assert host.engine.current_index == 5
        assert host.follower_position == (5.0, 10.0)
        assert not host.engine.is_playing

    @pytest.mark.asyncio
    async def test_space_toggles_replay(self, events_controller):
        engine = events_controller.host.engine
        await events_controller.handle_key(" ")
        assert engine.is_playing

        await events_controller.handle_key(" ")
        assert not engine.is_playing
        await engine.shutdown()

    @pytest.mark.asyncio
    async def test_space_at_last_point_restarts(self, events_controller):
        engine = events_controller.host.engine
        await events_controller.handle_key("9")
        assert engine.current_index == engine.total_points - 1

        await events_controller.handle_key(" ")
        assert engine.is_playing
        await engine.shutdown()

    @pytest.mark.asyncio
    async def test_stop_rewinds(self, events_controller):
        engine = events_controller.host.engine
        await events_controller.handle_key("7")
        await events_controller.handle_key("s")
        assert engine.current_index == 0
        assert logged(events_controller, "Playback stopped")

    @pytest.mark.asyncio
    async def test_reload(self, events_controller, csv_file):
        await events_controller.handle_key("r")
        assert logged(events_controller, "10 points, 0 skipped")

        csv_file.unlink()
        await events_controller.handle_key("r")
        assert logged(events_controller, "Reload failed: ")
        assert events_controller.host.engine.total_points == 10

    def test_trajectory_keys_not_bound(self, events_controller):
        assert "n" not in events_controller.key_bindings
        assert "5" in events_controller.key_bindings


class TestTrajectoriesKeys:
    @pytest.mark.asyncio
    async def test_navigation(self, trajectories_controller):
        player = trajectories_controller.host.engine
        await trajectories_controller.handle_key("n")
        assert player.current_trajectory_id == "2"

        await trajectories_controller.handle_key("p")
        await trajectories_controller.handle_key("p")
        assert player.current_trajectory_id == "10"

    @pytest.mark.asyncio
    async def test_play_pause_and_stop(self, trajectories_controller):
        player = trajectories_controller.host.engine
        await trajectories_controller.handle_key(" ")
        assert player.is_playing

        await trajectories_controller.handle_key("s")
        assert not player.is_playing
        assert player.current_frame_index == 0

    @pytest.mark.asyncio
    async def test_failed_reload_keeps_data(self, trajectories_controller, trajectory_file):
        trajectory_file.unlink()
        assert await trajectories_controller.handle_key("r")
        assert logged(trajectories_controller, "Reload failed: ")
        assert len(trajectories_controller.host.engine.store) == 3

    def test_seek_keys_not_bound(self, trajectories_controller):
        assert "5" not in trajectories_controller.key_bindings
        assert "t" not in trajectories_controller.key_bindings


class TestDashboardKeys:
    @pytest.mark.asyncio
    async def test_pause_dashboard(self, events_controller):
        await events_controller.handle_key("d")
        assert events_controller.dashboard.state.paused
        await events_controller.handle_key("d")
        assert not events_controller.dashboard.state.paused

    @pytest.mark.asyncio
    async def test_refresh_rate_keys(self, events_controller):
        dashboard = events_controller.dashboard
        await events_controller.handle_key("]")
        assert dashboard.state.refresh_rate_ms == 150
        assert events_controller.host.config.refresh_rate == 150

        await events_controller.handle_key("[")
        await events_controller.handle_key("[")
        assert dashboard.state.refresh_rate_ms == 250

    @pytest.mark.asyncio
    async def test_help_panel(self, events_controller):
        dashboard = events_controller.dashboard
        assert "Interactive Controls Help" not in dashboard.render()

        await events_controller.handle_key("h")
        output = dashboard.render()
        assert "Interactive Controls Help" in output
        assert "space: Play/Pause playback" in output
        assert "Seek to 50%" in output

    def test_help_text_groups_by_mode(self, trajectories_controller):
        help_text = trajectories_controller.get_help_text()
        assert "Trajectories:" in help_text
        assert "n: Next trajectory" in help_text
        assert "Seeking:" not in help_text

    @pytest.mark.asyncio
    async def test_quit(self, csv_file, config_dir, mocker):
        on_quit = mocker.Mock()
        config = PlayerConfig(source_path=str(csv_file), mode=MODE_EVENTS)
        controller = build_controller(config, config_dir, on_quit=on_quit)
        controller.running = True

        await controller.handle_key("q")
        on_quit.assert_called_once_with()
        assert controller.running is False

    @pytest.mark.asyncio
    async def test_unknown_key(self, events_controller):
        assert await events_controller.handle_key("z") is False
        assert logged(events_controller, "Unknown key: 'z'")

    @pytest.mark.asyncio
    async def test_read_loop_dispatches_keys(self, events_controller, mocker):
        keys = iter(["l", None, "q"])
        mocker.patch.object(events_controller, "_read_key", side_effect=lambda: next(keys))
        events_controller.running = True

        await events_controller.handle_input()

        assert events_controller.host.engine.loop is True
        assert events_controller.running is False
