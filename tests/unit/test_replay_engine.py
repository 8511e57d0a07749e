"""Unit tests for the asyncio ReplayEngine.

Waits go through an injected sleep: `sleep_recorder` only records the
delay and yields, while `BlockingSleep` parks the replay task until the
test releases or cancels it.
"""
import asyncio
import logging

import pytest

from trajectory_replay import PlaybackError, ReplayEngine, const

ALL_EVENTS = const.REPLAY_EVENTS


class BlockingSleep:
    """Sleep that blocks until `release()` is called."""

    def __init__(self):
        self.delays = []
        self._event = asyncio.Event()

    async def __call__(self, delay):
        self.delays.append(delay)
        await self._event.wait()
        self._event.clear()

    def release(self):
        self._event.set()


async def settle(rounds=5):
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def engine(sleep_recorder, sample_points):
    engine = ReplayEngine(sleep=sleep_recorder)
    engine.load_points(sample_points)
    return engine


class TestConfiguration:
    def test_speed_clamped_to_range(self):
        engine = ReplayEngine()
        engine.set_speed(50)
        assert engine.speed == const.MAX_REPLAY_SPEED
        engine.set_speed(0.01)
        assert engine.speed == const.MIN_PLAYBACK_SPEED
        assert ReplayEngine(speed=100).speed == const.MAX_REPLAY_SPEED

    def test_speed_steps(self):
        engine = ReplayEngine(speed=2.0)
        engine.increase_speed()
        assert engine.speed == pytest.approx(3.0)
        engine.decrease_speed()
        engine.decrease_speed()
        assert engine.speed == pytest.approx(2.0 / 1.5)
        engine.set_speed(9.0)
        engine.increase_speed()
        assert engine.speed == const.MAX_REPLAY_SPEED

    def test_toggle_timestamp_mode(self):
        engine = ReplayEngine()
        assert engine.use_real_timestamps is True
        assert engine.toggle_timestamp_mode() is False
        assert engine.use_real_timestamps is False

    @pytest.mark.parametrize("kwargs", [{"timeout_threshold": -1}, {"fixed_time_step": -0.1}])
    def test_negative_durations_rejected(self, kwargs):
        with pytest.raises(PlaybackError):
            ReplayEngine(**kwargs)


class TestComputeWait:
    def test_scaled_by_speed(self, sample_points):
        engine = ReplayEngine(speed=2.0)
        assert engine.compute_wait(sample_points[0], sample_points[1]) == pytest.approx(0.25)

    @pytest.mark.parametrize("speed", [0.1, 1.0, 10.0])
    def test_gap_skip_ignores_speed(self, sample_points, speed):
        engine = ReplayEngine(speed=speed)
        assert engine.compute_wait(sample_points[2], sample_points[3]) == 0.0

    def test_gap_threshold_uses_unscaled_delta(self, sample_points):
        # 1.0 s delta at speed 0.1 would wait 10 s but is below the 5 s threshold
        engine = ReplayEngine(speed=0.1)
        assert engine.compute_wait(sample_points[1], sample_points[2]) == pytest.approx(10.0)

    def test_fixed_step(self, sample_points):
        engine = ReplayEngine(speed=2.0, fixed_time_step=0.2, use_real_timestamps=False)
        assert engine.compute_wait(sample_points[2], sample_points[3]) == pytest.approx(0.1)

    def test_backwards_timestamps_give_negative_wait(self, sample_points):
        engine = ReplayEngine()
        assert engine.compute_wait(sample_points[1], sample_points[0]) < 0


class TestSnapshot:
    def test_empty_engine(self):
        engine = ReplayEngine()
        assert engine.progress == 0.0
        assert engine.current_position == (0.0, 0.0)
        assert engine.current_trajectory_id == ""
        assert engine.current_point is None

    def test_seek_normalized_publishes_immediately(self, csv_header, csv_line_factory, event_recorder):
        engine = ReplayEngine()
        text = "\n".join([csv_header] + [csv_line_factory(i, i * 1000) for i in range(10)])
        engine.load_text(text)
        event_recorder.attach(engine, *ALL_EVENTS)

        engine.seek_normalized(0.5)

        assert engine.current_index == 5
        assert engine.progress == 0.5
        assert not engine.is_playing
        assert [args[0].id for args in event_recorder.args_of(const.EVENT_DATA_POINT_UPDATED)] == ["5"]
        assert engine.current_position == (5.0, 10.0)
        assert engine.current_orientation == 50.0
        assert engine.current_velocity == 1.5

    @pytest.mark.parametrize("fraction, index", [(0.0, 0), (0.99, 3), (1.0, 3), (-2.0, 0), (7.0, 3)])
    def test_seek_clamps(self, engine, fraction, index):
        engine.seek_normalized(fraction)
        assert engine.current_index == index

    @pytest.mark.parametrize("fraction, index", [(float("inf"), 3), (float("-inf"), 0)])
    def test_seek_infinite_fraction(self, engine, fraction, index):
        engine.seek_normalized(fraction)
        assert engine.current_index == index

    def test_seek_nan_is_ignored(self, engine, event_recorder, caplog):
        engine.seek_normalized(0.5)
        event_recorder.attach(engine, *ALL_EVENTS)
        with caplog.at_level(logging.WARNING, logger="trajectory_replay.replay_engine"):
            engine.seek_normalized(float("nan"))
        assert engine.current_index == 2
        assert event_recorder.calls == []
        assert "Ignoring seek to NaN position" in caplog.text

    def test_seek_without_data(self, caplog):
        engine = ReplayEngine()
        with caplog.at_level(logging.WARNING, logger="trajectory_replay.replay_engine"):
            engine.seek_normalized(0.5)
        assert "No data to seek in" in caplog.text

    def test_load_file(self, csv_file):
        engine = ReplayEngine()
        result = engine.load_file(csv_file)
        assert engine.total_points == 10
        assert engine.last_parse_result is result
        assert engine.current_point.id == "0"


class TestReplay:
    @pytest.mark.asyncio
    async def test_start_without_data(self, event_recorder, caplog):
        engine = ReplayEngine()
        event_recorder.attach(engine, *ALL_EVENTS)
        with caplog.at_level(logging.WARNING, logger="trajectory_replay.replay_engine"):
            assert engine.start() is False
        assert engine.task is None
        assert event_recorder.calls == []
        assert "No data to replay" in caplog.text

    @pytest.mark.asyncio
    async def test_full_replay(self, engine, sleep_recorder, event_recorder):
        event_recorder.attach(engine, *ALL_EVENTS)
        assert engine.start() is True
        assert engine.is_playing
        await engine.wait_for_completion()

        assert sleep_recorder.delays == pytest.approx([0.5, 1.0])
        assert event_recorder.names() == [
            const.EVENT_REPLAY_STARTED,
            const.EVENT_DATA_POINT_UPDATED,
            const.EVENT_DATA_POINT_UPDATED,
            const.EVENT_DATA_POINT_UPDATED,
            const.EVENT_DATA_POINT_UPDATED,
            const.EVENT_REPLAY_COMPLETED,
        ]
        assert not engine.is_playing
        assert engine.current_index == 3
        assert engine.current_point.id == "3"

    @pytest.mark.asyncio
    async def test_speed_scales_waits(self, engine, sleep_recorder):
        engine.set_speed(2.0)
        engine.start()
        await engine.wait_for_completion()
        assert sleep_recorder.delays == pytest.approx([0.25, 0.5])

    @pytest.mark.asyncio
    async def test_fixed_step_mode(self, engine, sleep_recorder):
        engine.toggle_timestamp_mode()
        engine.start()
        await engine.wait_for_completion()
        assert sleep_recorder.delays == pytest.approx([0.1, 0.1, 0.1])

    @pytest.mark.asyncio
    async def test_pause_mid_wait_cancels(self, sample_points, event_recorder):
        sleep = BlockingSleep()
        engine = ReplayEngine(sleep=sleep)
        engine.load_points(sample_points)
        event_recorder.attach(engine, *ALL_EVENTS)

        engine.start()
        await settle()
        assert sleep.delays == [0.5]
        task = engine.task

        engine.pause()
        await settle()

        assert task.cancelled()
        assert not engine.is_playing
        assert engine.current_index == 0
        assert event_recorder.names() == [
            const.EVENT_REPLAY_STARTED,
            const.EVENT_DATA_POINT_UPDATED,
            const.EVENT_REPLAY_PAUSED,
        ]

    @pytest.mark.asyncio
    async def test_pause_when_not_playing_is_silent(self, engine, event_recorder):
        event_recorder.attach(engine, *ALL_EVENTS)
        engine.pause()
        assert event_recorder.calls == []

    @pytest.mark.asyncio
    async def test_resume_continues_from_index(self, sample_points, event_recorder):
        sleep = BlockingSleep()
        engine = ReplayEngine(sleep=sleep)
        engine.load_points(sample_points)
        engine.start()
        await settle()
        sleep.release()
        await settle()
        assert engine.current_index == 1
        engine.pause()
        await settle()

        event_recorder.attach(engine, *ALL_EVENTS)
        assert engine.resume() is True
        await settle()
        assert event_recorder.names()[:2] == [
            const.EVENT_REPLAY_STARTED, const.EVENT_DATA_POINT_UPDATED
        ]
        assert event_recorder.args_of(const.EVENT_DATA_POINT_UPDATED)[0][0].id == "1"
        # Elapsed wait is not preserved: the resumed run waits the full delta again
        assert sleep.delays[-1] == pytest.approx(1.0)
        await engine.shutdown()

    @pytest.mark.asyncio
    async def test_resume_while_playing_is_rejected(self, engine):
        engine.start()
        assert engine.resume() is False
        await engine.shutdown()

    @pytest.mark.asyncio
    async def test_stop_rewinds(self, engine):
        engine.seek_normalized(0.75)
        engine.start()
        await settle()
        engine.stop()
        assert engine.current_index == 0
        assert not engine.is_playing

    @pytest.mark.asyncio
    async def test_start_while_playing_restarts_from_first_point(self, sample_points, event_recorder):
        sleep = BlockingSleep()
        engine = ReplayEngine(sleep=sleep)
        engine.load_points(sample_points)
        engine.start()
        await settle()
        sleep.release()
        await settle()
        assert engine.current_index == 1

        event_recorder.attach(engine, *ALL_EVENTS)
        engine.start()
        await settle()
        assert event_recorder.names()[:3] == [
            const.EVENT_REPLAY_PAUSED,
            const.EVENT_REPLAY_STARTED,
            const.EVENT_DATA_POINT_UPDATED,
        ]
        assert event_recorder.args_of(const.EVENT_DATA_POINT_UPDATED)[0][0].id == "0"
        await engine.shutdown()

    @pytest.mark.asyncio
    async def test_loop_restarts_until_stopped(self, sleep_recorder, point_factory, event_recorder):
        engine = ReplayEngine(loop=True, sleep=sleep_recorder)
        engine.load_points([point_factory(0, 0), point_factory(1, 100_000_000)])
        event_recorder.attach(engine, *ALL_EVENTS)
        completions = []

        def on_completed():
            completions.append(engine.current_index)
            if len(completions) == 2:
                engine.stop()

        engine.add_listener(const.EVENT_REPLAY_COMPLETED, on_completed)
        engine.start()
        await engine.wait_for_completion()

        started = const.EVENT_REPLAY_STARTED
        updated = const.EVENT_DATA_POINT_UPDATED
        completed = const.EVENT_REPLAY_COMPLETED
        assert event_recorder.names() == [
            started, updated, updated, completed,
            started, updated, updated, completed,
        ]
        assert completions == [1, 1]
        assert not engine.is_playing
        assert engine.current_index == 0

    @pytest.mark.asyncio
    async def test_cancelling_waiter_propagates_and_keeps_replay(self, sample_points):
        sleep = BlockingSleep()
        engine = ReplayEngine(sleep=sleep)
        engine.load_points(sample_points)
        engine.start()
        waiter = asyncio.create_task(engine.wait_for_completion())
        await settle()

        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

        assert waiter.cancelled()
        assert engine.is_playing
        assert not engine.task.done()
        await engine.shutdown()

    @pytest.mark.asyncio
    async def test_wait_returns_after_pause(self, sample_points):
        sleep = BlockingSleep()
        engine = ReplayEngine(sleep=sleep)
        engine.load_points(sample_points)
        engine.start()
        waiter = asyncio.create_task(engine.wait_for_completion())
        await settle()

        engine.pause()
        await asyncio.wait_for(waiter, timeout=1.0)
        assert not waiter.cancelled()

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_stop_replay(self, engine):
        def broken(point):
            raise RuntimeError("subscriber failed")

        engine.add_listener(const.EVENT_DATA_POINT_UPDATED, broken)
        engine.start()
        await engine.wait_for_completion()
        assert engine.current_index == 3

    @pytest.mark.asyncio
    async def test_load_points_stops_running_replay(self, engine, point_factory):
        engine.start()
        await settle()
        engine.load_points([point_factory(9, 0)])
        assert not engine.is_playing
        assert engine.total_points == 1
        assert engine.current_point.id == "9"

    @pytest.mark.asyncio
    async def test_real_sleep_short_replay(self, point_factory):
        engine = ReplayEngine(speed=10.0)
        engine.load_points([point_factory(i, i * 10_000_000) for i in range(3)])
        engine.start()
        await asyncio.wait_for(engine.wait_for_completion(), timeout=2.0)
        assert engine.current_index == 2
