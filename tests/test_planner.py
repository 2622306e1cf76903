import pytest

from hookdrop.constants import MULTIPART_THRESHOLD, PART_SIZE
from hookdrop.upload.planner import PartTask, needs_multipart, plan_parts

MiB = 1024 * 1024


def test_plan_parts_even_split():
    tasks = plan_parts(100 * MiB, 10 * MiB)

    assert len(tasks) == 10
    assert [task.part_number for task in tasks] == list(range(1, 11))
    assert tasks[-1] == PartTask(part_number=10, start=94371840, end=104857600)
    assert all(task.size == 10 * MiB for task in tasks)


def test_plan_parts_short_last_part():
    tasks = plan_parts(25, 10)

    assert tasks == [PartTask(1, 0, 10), PartTask(2, 10, 20), PartTask(3, 20, 25)]
    assert tasks[-1].size == 5


def test_plan_parts_covers_file_without_gaps():
    size = 3 * PART_SIZE + 12345
    tasks = plan_parts(size, PART_SIZE)

    assert tasks[0].start == 0
    assert tasks[-1].end == size
    for previous, current in zip(tasks, tasks[1:], strict=False):
        assert current.start == previous.end
    assert sum(task.size for task in tasks) == size


def test_plan_parts_single_part_for_small_file():
    assert plan_parts(1, PART_SIZE) == [PartTask(1, 0, 1)]


@pytest.mark.parametrize(("size", "part_size"), [(0, 10), (-1, 10), (10, 0), (10, -5)])
def test_plan_parts_rejects_non_positive_sizes(size, part_size):
    with pytest.raises(ValueError):
        plan_parts(size, part_size)


def test_needs_multipart_threshold():
    assert not needs_multipart(MULTIPART_THRESHOLD - 1, MULTIPART_THRESHOLD)
    assert needs_multipart(MULTIPART_THRESHOLD, MULTIPART_THRESHOLD)
    assert needs_multipart(MULTIPART_THRESHOLD + 1, MULTIPART_THRESHOLD)


@pytest.mark.parametrize(
    ("size", "part_size"),
    [(1, 1), (25, 10), (100 * MiB, 10 * MiB), (MULTIPART_THRESHOLD + 1, PART_SIZE), (7 * PART_SIZE - 1, PART_SIZE)],
)
def test_plan_parts_is_repeatable(size, part_size):
    first = plan_parts(size, part_size)
    second = plan_parts(size, part_size)

    assert first == second
    assert first is not second
