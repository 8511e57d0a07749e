"""
Shared test fixtures for the trajectory replay test suites.

## Key Features

- **Sample data**: trajectory JSON and CSV event log texts, plus helpers
  that write them to temporary files.
- **Deterministic time**: a manually advanced clock for the frame-stepping
  player and a recording sleep for the asyncio replay engine, so no test
  waits on wall-clock time.
- **Event capture**: a recorder that subscribes to engine events and keeps
  the calls in order.

## Usage Patterns

```python
def test_advance(self, fake_clock, sample_trajectory_json):
    player = TrajectoryPlayer(clock=fake_clock)
    player.load_text(sample_trajectory_json)
    player.play()
    fake_clock.advance(0.1)
    assert player.tick()
```

```python
@pytest.mark.asyncio
async def test_replay(self, sleep_recorder, sample_points):
    engine = ReplayEngine(sleep=sleep_recorder)
    engine.load_points(sample_points)
    engine.start()
    await engine.wait_for_completion()
```
"""

import asyncio
from typing import Any, List, Tuple

import pytest

from trajectory_replay import ReplayDataPoint

CSV_HEADER = "id_prefix,id,x,y,velocity,orientation,timestamp,workstation,trajectory_id,start,goal"

# Three trajectories whose IDs sort differently as strings and as integers
SAMPLE_TRAJECTORY_JSON = """
{
    "10": [
        {"t_id": 10, "t": 1000, "x": 5.0, "y": 5.5},
        {"t_id": 10, "t": 1100, "x": 6.0, "y": 6.5}
    ],
    "2": [
        {"t_id": 2, "t": 200, "x": 1.0, "y": 2.0, "p_x": [1.5, 2.0], "p_y": [2.5, 3.0]},
        {"t_id": 2, "t": 300, "x": 1.5, "y": 2.5, "label": "ignored", "meta": {"a": [1, 2]}},
        {"t_id": 2, "t": 400, "x": 2.0, "y": 3.0}
    ],
    "1": [
        {"t_id": 1, "t": 100, "x": 0.0, "y": 0.0},
        {"t_id": 1, "t": 110, "x": 0.5, "y": -0.5},
        {"t_id": 1, "t": 120, "x": 1.0, "y": -1.0}
    ]
}
"""


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


class SleepRecorder:
    """Async sleep replacement that records requested delays and only yields."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


class EventRecorder:
    """Collects (event_name, args) tuples from any number of events."""

    def __init__(self):
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []

    def listener(self, event_name: str):
        def _record(*args):
            self.calls.append((event_name, args))
        return _record

    def attach(self, engine, *event_names: str) -> "EventRecorder":
        for name in event_names:
            engine.add_listener(name, self.listener(name))
        return self

    def names(self) -> List[str]:
        return [name for name, _ in self.calls]

    def args_of(self, event_name: str) -> List[Tuple[Any, ...]]:
        return [args for name, args in self.calls if name == event_name]


def make_csv_line(index: int, timestamp: int, x: float = None, y: float = None,
                  trajectory_id: str = "T1") -> str:
    x = float(index) if x is None else x
    y = float(index) * 2 if y is None else y
    return f"P,{index},{x},{y},1.5,{index * 10}.0,{timestamp},3,{trajectory_id},0.0,1.0"


def make_point(index: int, timestamp: int) -> ReplayDataPoint:
    return ReplayDataPoint(
        id_prefix="P",
        id=str(index),
        position=(float(index), float(index) * 2),
        velocity_scalar=1.5,
        orientation=index * 10.0,
        timestamp=timestamp,
        workstation=3,
        trajectory_id="T1",
        start=0.0,
        goal=1.0,
    )


@pytest.fixture
def sample_trajectory_json() -> str:
    return SAMPLE_TRAJECTORY_JSON


@pytest.fixture
def sample_csv_text() -> str:
    """Header plus ten data lines spaced 0.1 s apart (nanosecond timestamps)."""
    lines = [CSV_HEADER]
    lines += [make_csv_line(i, 1_000_000_000 + i * 100_000_000) for i in range(10)]
    return "\n".join(lines) + "\n"


@pytest.fixture
def sample_points() -> List[ReplayDataPoint]:
    """Four points: 0.5 s, 1.0 s and a 10 s gap between them."""
    base = 5_000_000_000
    return [
        make_point(0, base),
        make_point(1, base + 500_000_000),
        make_point(2, base + 1_500_000_000),
        make_point(3, base + 11_500_000_000),
    ]


@pytest.fixture
def trajectory_file(tmp_path, sample_trajectory_json):
    path = tmp_path / "trajectories.json"
    path.write_text(sample_trajectory_json, encoding="utf-8")
    return path


@pytest.fixture
def csv_file(tmp_path, sample_csv_text):
    path = tmp_path / "events.csv"
    path.write_text(sample_csv_text, encoding="utf-8")
    return path


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def event_recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture
def config_dir(tmp_path):
    """Isolated configuration directory for ConfigurationManager tests."""
    return str(tmp_path / "config")


@pytest.fixture
def csv_header() -> str:
    return CSV_HEADER


@pytest.fixture
def csv_line_factory():
    return make_csv_line


@pytest.fixture
def point_factory():
    return make_point
