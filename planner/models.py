"""Data models for event planning."""
from dataclasses import asdict, dataclass, field
from typing import Any, List, Optional


GAME_CATEGORIES = (
    'icebreaker',
    'team',
    'individual',
    'quiet',
    'active',
    'spiritual',
)

LOCATION_TYPES = ('indoor', 'outdoor', 'both')

EVENT_TYPES = ('indoor', 'outdoor')

EVENT_STATUSES = ('planning', 'in-progress', 'completed')

# Program category -> display label
PROGRAM_CATEGORIES = {
    'game': '게임',
    'worship': '예배',
    'meal': '식사',
    'qt': '큐티',
    'ice_break': '아이스브레이크',
    'praise': '찬양',
    'lecture': '강의/설교',
    'group': '조별 활동',
    'rest': '휴식',
    'etc': '기타',
}

SOURCE_TYPES = ('game', 'memo')

MEMO_AI_TYPES = ('summary', 'suggestions')


def category_label(category: str) -> str:
    """Return the display label for a program category."""
    return PROGRAM_CATEGORIES.get(category, PROGRAM_CATEGORIES['etc'])


@dataclass
class PlayerRange:
    """Participant count bounds."""
    min: int
    max: int


@dataclass
class ParsedGame:
    """Game record extracted from generated markdown."""
    name: str
    description: str
    players: PlayerRange
    duration: int
    materials: List[str] = field(default_factory=list)
    rules: List[str] = field(default_factory=list)


@dataclass
class Game:
    """Saved game definition."""
    id: str
    name: str
    category: str
    description: str
    min_players: int
    max_players: int
    duration: int
    location: str
    materials: List[str] = field(default_factory=list)
    rules: List[str] = field(default_factory=list)


@dataclass
class EventGame:
    """Game registered to an event."""
    id: str
    event_id: str
    game_id: str
    order_index: int
    game: Optional[Game] = None


@dataclass
class ProgramSource:
    """Provenance of a program (never an ownership edge)."""
    type: str
    id: str


@dataclass
class Program:
    """Reusable activity definition, independent of scheduling."""
    id: str
    name: str
    duration: int
    location_type: str
    category: str
    location: str
    description: Optional[str] = None
    source: Optional[ProgramSource] = None


@dataclass
class ScheduleBlock(Program):
    """Program placed on an event's running order."""
    start_time: Optional[str] = None
    order: Optional[int] = None

    @classmethod
    def from_program(
        cls,
        program: Program,
        start_time: Optional[str] = None,
        order: Optional[int] = None
    ) -> 'ScheduleBlock':
        return cls(
            id=program.id,
            name=program.name,
            duration=program.duration,
            location_type=program.location_type,
            category=program.category,
            location=program.location,
            description=program.description,
            source=program.source,
            start_time=start_time,
            order=order
        )


@dataclass
class TimeRange:
    """Overall span of a schedule in minutes since midnight."""
    start_minutes: int
    end_minutes: int


@dataclass
class Event:
    """Youth-group event."""
    id: str
    name: str
    date: str
    location: str
    type: str
    status: str
    created_at: str
    updated_at: str


@dataclass
class ChecklistSubItem:
    id: str
    item_id: str
    checklist_id: str
    title: str
    is_completed: bool
    created_at: str
    updated_at: str


@dataclass
class ChecklistItem:
    id: str
    checklist_id: str
    title: str
    is_completed: bool
    created_at: str
    updated_at: str
    sub_items: List[ChecklistSubItem] = field(default_factory=list)


@dataclass
class Checklist:
    id: str
    event_id: str
    title: str
    due_date: str
    is_completed: bool
    created_at: str
    updated_at: str
    items: List[ChecklistItem] = field(default_factory=list)


@dataclass
class Memo:
    id: str
    event_id: str
    title: str
    content: str
    created_at: str
    updated_at: str


@dataclass
class MemoAIContent:
    """Generated summary or suggestions for a memo."""
    id: str
    memo_id: str
    type: str
    content: str
    created_at: str


@dataclass
class ActionResult:
    """Outcome of an action: data on success, a readable error otherwise."""
    success: bool
    data: Any = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None) -> 'ActionResult':
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> 'ActionResult':
        return cls(success=False, error=error)

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dict."""
        result = {'success': self.success}
        if self.success:
            result['data'] = _to_plain(self.data)
        else:
            result['error'] = self.error
        return result


def _to_plain(value: Any) -> Any:
    if hasattr(value, '__dataclass_fields__'):
        return asdict(value)
    if isinstance(value, (list, tuple)):
        return [_to_plain(v) for v in value]
    if isinstance(value, dict):
        return {k: _to_plain(v) for k, v in value.items()}
    return value
