"""Time arithmetic and ordering for schedule blocks."""
import logging
from dataclasses import replace
from typing import List, Optional, Sequence, Tuple

from planner.models import Program, ScheduleBlock, TimeRange

logger = logging.getLogger(__name__)


MINUTES_PER_HOUR = 60


def to_minutes(time_str: str) -> int:
    """
    Convert an "HH:MM" string to minutes since midnight.

    No validation is done; malformed strings raise ValueError from the
    integer conversion.
    """
    hours, minutes = time_str.split(':')[:2]
    return int(hours) * MINUTES_PER_HOUR + int(minutes)


def format_minutes(total_minutes: int) -> str:
    """
    Format minutes since midnight as "HH:MM".

    Values past midnight are not wrapped (1500 -> "25:00").
    """
    hours, minutes = divmod(total_minutes, MINUTES_PER_HOUR)
    return f"{hours:02d}:{minutes:02d}"


def end_time(block: ScheduleBlock) -> Optional[str]:
    """Derive a block's end time from its start time and duration."""
    if not block.start_time:
        return None
    return format_minutes(to_minutes(block.start_time) + block.duration)


def sorted_by_start(blocks: Sequence[ScheduleBlock]) -> List[ScheduleBlock]:
    """
    Return only the scheduled blocks, sorted by start time.

    Zero-padded 24h "HH:MM" strings sort lexically in time order.
    """
    timed = [block for block in blocks if block.start_time]
    return sorted(timed, key=lambda block: block.start_time)


def time_range(blocks: Sequence[ScheduleBlock]) -> Optional[TimeRange]:
    """
    Compute the overall span of the scheduled blocks.

    Args:
        blocks: Schedule blocks, scheduled or not

    Returns:
        TimeRange with the earliest start and the latest end, or None if no
        block has a start time
    """
    timed = sorted_by_start(blocks)
    if not timed:
        return None

    starts = [to_minutes(block.start_time) for block in timed]
    ends = [start + block.duration for start, block in zip(starts, timed)]

    return TimeRange(start_minutes=min(starts), end_minutes=max(ends))


def _timed_first(blocks: Sequence[ScheduleBlock]) -> List[ScheduleBlock]:
    return sorted(
        blocks,
        key=lambda block: (not block.start_time, block.start_time or '')
    )


def reorder_on_time_change(
    blocks: Sequence[ScheduleBlock],
    block_id: str,
    new_time: Optional[str]
) -> List[ScheduleBlock]:
    """
    Set a block's start time and re-sort the whole schedule.

    Args:
        blocks: Current schedule blocks
        block_id: Id of the block to update
        new_time: New "HH:MM" start time (empty or None unschedules it)

    Returns:
        New list with timed blocks ascending, untimed blocks last
    """
    updated = [
        replace(block, start_time=new_time or None)
        if block.id == block_id else block
        for block in blocks
    ]
    return _timed_first(updated)


def add_block(blocks: Sequence[ScheduleBlock], program: Program) -> List[ScheduleBlock]:
    """Append a program to the schedule as an unscheduled block."""
    new_block = ScheduleBlock.from_program(program, start_time=None, order=len(blocks))
    return list(blocks) + [new_block]


def remove_block(blocks: Sequence[ScheduleBlock], block_id: str) -> List[ScheduleBlock]:
    """Remove a block from the schedule; the program itself is untouched."""
    return [block for block in blocks if block.id != block_id]


def render_rows(blocks: Sequence[ScheduleBlock]) -> List[Tuple[ScheduleBlock, str, str]]:
    """
    Build preview rows for the scheduled blocks.

    Returns:
        (block, start label, end label) tuples in start-time order
    """
    rows = []
    for block in sorted_by_start(blocks):
        start_minutes = to_minutes(block.start_time)
        rows.append((
            block,
            format_minutes(start_minutes),
            format_minutes(start_minutes + block.duration)
        ))
    return rows


def sequence_blocks(programs: Sequence[Program], start_time: str) -> List[ScheduleBlock]:
    """
    Place programs back to back starting at start_time.

    Each block starts when the previous one ends, so the result has no
    overlaps. Order follows the input.

    Args:
        programs: Programs in running order
        start_time: "HH:MM" start of the first block

    Returns:
        Schedule blocks with start times and order positions
    """
    current = to_minutes(start_time)
    blocks = []
    for index, program in enumerate(programs):
        blocks.append(
            ScheduleBlock.from_program(
                program,
                start_time=format_minutes(current),
                order=index
            )
        )
        current += program.duration

    if blocks:
        logger.debug(
            f"Sequenced {len(blocks)} blocks from {start_time} to "
            f"{format_minutes(current)}"
        )
    return blocks
