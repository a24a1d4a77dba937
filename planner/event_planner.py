"""Event planning actions returning uniform result objects."""
import functools
import inspect
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from completion.openai_provider import CompletionError
from planner import prompts, schedule_model
from planner.game_parser import convert_to_game, parse_games
from planner.input_normalizer import InputNormalizer
from planner.models import (
    EVENT_STATUSES,
    EVENT_TYPES,
    GAME_CATEGORIES,
    LOCATION_TYPES,
    MEMO_AI_TYPES,
    PROGRAM_CATEGORIES,
    SOURCE_TYPES,
    ActionResult,
    Checklist,
    ChecklistItem,
    ChecklistSubItem,
    Event,
    EventGame,
    Game,
    Memo,
    MemoAIContent,
    Program,
    ProgramSource,
    ScheduleBlock,
    category_label,
)

logger = logging.getLogger(__name__)


AI_UNAVAILABLE_MESSAGE = "OpenAI API 키가 설정되지 않아 AI 기능을 사용할 수 없습니다."

LOCATION_LABELS = {
    'indoor': '실내',
    'outdoor': '야외',
    'both': '실내/야외',
}


class NotFoundError(LookupError):
    """Raised when a referenced record does not exist."""


def action(error_message: str):
    """
    Run an action inside a single try/except and wrap the outcome.

    Input and lookup errors carry their own message; anything else is logged
    and reported with error_message.
    """
    def decorator(func):
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(self, *args, **kwargs) -> ActionResult:
            # Arguments that do not fit the action raise TypeError to the caller
            signature.bind(self, *args, **kwargs)
            try:
                return ActionResult.ok(func(self, *args, **kwargs))
            except (ValueError, NotFoundError) as e:
                logger.warning(f"{func.__name__} rejected: {e}")
                return ActionResult.fail(str(e))
            except CompletionError as e:
                logger.error(f"{func.__name__} completion failed: {e}")
                return ActionResult.fail(error_message)
            except Exception as e:
                logger.error(
                    f"{func.__name__} failed: {e}",
                    extra={'error_type': type(e).__name__},
                    exc_info=True
                )
                return ActionResult.fail(error_message)
        return wrapper
    return decorator


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
    return str(uuid.uuid4())


class EventPlanner:
    """Actions for events, games, memos, checklists, programs and schedules."""

    def __init__(self, datastore, completion_provider, normalizer: Optional[InputNormalizer] = None):
        """
        Initialize the planner.

        Args:
            datastore: Datastore for all entities
            completion_provider: Text generation client
            normalizer: Input normalizer (default: InputNormalizer())
        """
        self.datastore = datastore
        self.completion_provider = completion_provider
        self.normalize = normalizer or InputNormalizer()

    def _require_ai(self) -> None:
        if not self.completion_provider.is_available():
            raise ValueError(AI_UNAVAILABLE_MESSAGE)

    def _find(self, record, label: str, record_id: str):
        if record is None:
            raise NotFoundError(f"{label} not found: {record_id}")
        return record

    # Events

    @action("행사 생성 중 오류가 발생했습니다.")
    def create_event(
        self,
        name: str,
        date: str,
        location: str,
        event_type: str,
        status: str = 'planning'
    ) -> Event:
        now = _now()
        event = Event(
            id=_new_id(),
            name=self.normalize.title(name, 'name'),
            date=self.normalize.date(date),
            location=self.normalize.require(location, 'location'),
            type=self.normalize.choice(event_type, EVENT_TYPES, 'event_type'),
            status=self.normalize.choice(status, EVENT_STATUSES, 'status'),
            created_at=now,
            updated_at=now
        )
        self.datastore.put_event(event)
        logger.info(f"Created event {event.id}: {event.name}")
        return event

    @action("행사 목록 조회 중 오류가 발생했습니다.")
    def get_events(self) -> List[Event]:
        return self.datastore.list_events()

    @action("행사 조회 중 오류가 발생했습니다.")
    def get_event(self, event_id: str) -> Event:
        return self._find(self.datastore.get_event(event_id), 'Event', event_id)

    # Games

    @action("AI 게임 추천 중 오류가 발생했습니다.")
    def get_ai_game_recommendations(
        self,
        category: str,
        players: int,
        duration: int,
        location: str
    ) -> Dict[str, Any]:
        """
        Ask for three games matching the filters.

        Returns:
            Dict with the raw "recommendations" text and the parsed "games"
        """
        self._require_ai()
        filters = {
            'category': self.normalize.choice(category, GAME_CATEGORIES, 'category'),
            'players': self.normalize.positive_int(players, 'players'),
            'duration': self.normalize.positive_int(duration, 'duration'),
            'location': self.normalize.choice(location, LOCATION_TYPES, 'location'),
        }
        system, user = prompts.game_recommendation_prompt(filters)
        recommendations = self.completion_provider.complete(system, user, temperature=0.7)
        games = parse_games(recommendations)
        logger.info(f"Received {len(games)} parsable game recommendations")
        return {'recommendations': recommendations, 'games': games}

    @action("게임 저장 중 오류가 발생했습니다.")
    def save_game(
        self,
        name: str,
        category: str,
        description: str,
        min_players: int,
        max_players: int,
        duration: int,
        location: str,
        materials: Optional[List[str]] = None,
        rules: Optional[List[str]] = None
    ) -> Game:
        min_players = int(min_players)
        max_players = int(max_players)
        if min_players > max_players:
            raise ValueError("min_players must not exceed max_players")

        game = Game(
            id=_new_id(),
            name=self.normalize.title(name, 'name'),
            category=self.normalize.choice(category, GAME_CATEGORIES, 'category'),
            description=self.normalize.description(description) or '',
            min_players=min_players,
            max_players=max_players,
            duration=self.normalize.positive_int(duration, 'duration'),
            location=self.normalize.choice(location, LOCATION_TYPES, 'location'),
            materials=list(materials or []),
            rules=list(rules or [])
        )
        return self.datastore.put_game(game)

    @action("게임 저장 중 오류가 발생했습니다.")
    def save_recommended_game(
        self,
        recommendations: str,
        index: int,
        category: str,
        location: str
    ) -> Game:
        """Parse recommendation text and save the game at the given position."""
        parsed_games = parse_games(recommendations)
        index = int(index)
        if not 0 <= index < len(parsed_games):
            raise NotFoundError(f"No parsed game at position {index}")

        game = convert_to_game(
            parsed_games[index],
            self.normalize.choice(category, GAME_CATEGORIES, 'category'),
            self.normalize.choice(location, LOCATION_TYPES, 'location')
        )
        return self.datastore.put_game(game)

    @action("게임 목록 조회 중 오류가 발생했습니다.")
    def get_games(self) -> List[Game]:
        return self.datastore.list_games()

    @action("게임 등록 중 오류가 발생했습니다.")
    def register_games_to_event(self, event_id: str, game_ids: Sequence[str]) -> List[EventGame]:
        """Register games to an event after any already registered."""
        self._find(self.datastore.get_event(event_id), 'Event', event_id)
        existing = self.datastore.list_event_games(event_id)
        next_index = max((eg.order_index for eg in existing), default=-1) + 1

        registered = []
        for offset, game_id in enumerate(game_ids):
            game = self._find(self.datastore.get_game(game_id), 'Game', game_id)
            event_game = EventGame(
                id=_new_id(),
                event_id=event_id,
                game_id=game_id,
                order_index=next_index + offset,
                game=game
            )
            registered.append(self.datastore.put_event_game(event_game))
        return registered

    @action("등록된 게임 조회 중 오류가 발생했습니다.")
    def get_event_games(self, event_id: str) -> List[EventGame]:
        return self.datastore.list_event_games(event_id)

    @action("게임 등록 해제 중 오류가 발생했습니다.")
    def unregister_game_from_event(self, event_id: str, event_game_id: str) -> None:
        registered = {eg.id for eg in self.datastore.list_event_games(event_id)}
        if event_game_id not in registered:
            raise NotFoundError(f"Game registration not found: {event_game_id}")
        self.datastore.delete_event_game(event_game_id)

    # Memos

    @action("메모 생성 중 오류가 발생했습니다.")
    def create_memo(self, event_id: str, title: str, content: str) -> Memo:
        now = _now()
        memo = Memo(
            id=_new_id(),
            event_id=self.normalize.require(event_id, 'event_id'),
            title=self.normalize.title(title),
            content=content or '',
            created_at=now,
            updated_at=now
        )
        return self.datastore.put_memo(memo)

    @action("메모 목록 조회 중 오류가 발생했습니다.")
    def get_event_memos(self, event_id: str) -> List[Memo]:
        return self.datastore.list_memos(event_id)

    @action("메모 수정 중 오류가 발생했습니다.")
    def update_memo(self, memo_id: str, title: str, content: str) -> Memo:
        memo = self.datastore.update_memo(memo_id, {
            'title': self.normalize.title(title),
            'content': content or '',
            'updated_at': _now(),
        })
        return self._find(memo, 'Memo', memo_id)

    @action("메모 삭제 중 오류가 발생했습니다.")
    def delete_memo(self, memo_id: str) -> None:
        self.datastore.delete_memo(memo_id)

    @action("AI 콘텐츠 생성 중 오류가 발생했습니다.")
    def generate_memo_ai_content(self, memo_id: str, content_type: str) -> MemoAIContent:
        """Generate and store a summary or suggestions for a memo."""
        self._require_ai()
        content_type = self.normalize.choice(content_type, MEMO_AI_TYPES, 'content_type')
        memo = self._find(self.datastore.get_memo(memo_id), 'Memo', memo_id)

        system, user = prompts.memo_prompt(memo.content, content_type)
        text = self.completion_provider.complete(
            system,
            user,
            temperature=0.7,
            max_tokens=500
        )

        ai_content = MemoAIContent(
            id=_new_id(),
            memo_id=memo_id,
            type=content_type,
            content=text,
            created_at=_now()
        )
        return self.datastore.put_memo_ai_content(ai_content)

    @action("AI 콘텐츠 조회 중 오류가 발생했습니다.")
    def get_memo_ai_contents(self, memo_id: str) -> List[MemoAIContent]:
        return self.datastore.list_memo_ai_contents(memo_id)

    # Checklists

    @action("체크리스트 생성 중 오류가 발생했습니다.")
    def create_checklist(self, event_id: str, title: str, due_date: str) -> Checklist:
        now = _now()
        checklist = Checklist(
            id=_new_id(),
            event_id=self.normalize.require(event_id, 'event_id'),
            title=self.normalize.title(title),
            due_date=self.normalize.date(due_date, 'due_date'),
            is_completed=False,
            created_at=now,
            updated_at=now
        )
        return self.datastore.put_checklist(checklist)

    @action("체크리스트 조회 중 오류가 발생했습니다.")
    def get_event_checklists(self, event_id: str) -> List[Checklist]:
        return self.datastore.list_checklists(event_id)

    @action("체크리스트 삭제 중 오류가 발생했습니다.")
    def delete_checklist(self, checklist_id: str) -> None:
        self.datastore.delete_checklist(checklist_id)

    @action("체크리스트 항목 생성 중 오류가 발생했습니다.")
    def create_checklist_item(self, checklist_id: str, title: str) -> ChecklistItem:
        self._find(self.datastore.get_checklist(checklist_id), 'Checklist', checklist_id)
        now = _now()
        item = ChecklistItem(
            id=_new_id(),
            checklist_id=checklist_id,
            title=self.normalize.title(title),
            is_completed=False,
            created_at=now,
            updated_at=now
        )
        return self.datastore.put_checklist_item(item)

    @action("체크리스트 항목 수정 중 오류가 발생했습니다.")
    def update_checklist_item(self, item_id: str, is_completed: bool) -> ChecklistItem:
        item = self.datastore.update_checklist_item(item_id, {
            'is_completed': bool(is_completed),
            'updated_at': _now(),
        })
        return self._find(item, 'Checklist item', item_id)

    @action("체크리스트 항목 삭제 중 오류가 발생했습니다.")
    def delete_checklist_item(self, item_id: str) -> None:
        self.datastore.delete_checklist_item(item_id)

    @action("세부 항목 생성 중 오류가 발생했습니다.")
    def create_checklist_sub_item(self, item_id: str, title: str) -> ChecklistSubItem:
        item = self._find(self.datastore.get_checklist_item(item_id), 'Checklist item', item_id)
        now = _now()
        sub_item = ChecklistSubItem(
            id=_new_id(),
            item_id=item_id,
            checklist_id=item.checklist_id,
            title=self.normalize.title(title),
            is_completed=False,
            created_at=now,
            updated_at=now
        )
        return self.datastore.put_checklist_sub_item(sub_item)

    @action("세부 항목 수정 중 오류가 발생했습니다.")
    def update_checklist_sub_item(self, sub_item_id: str, is_completed: bool) -> ChecklistSubItem:
        sub_item = self.datastore.update_checklist_sub_item(sub_item_id, {
            'is_completed': bool(is_completed),
            'updated_at': _now(),
        })
        return self._find(sub_item, 'Checklist sub-item', sub_item_id)

    @action("세부 항목 삭제 중 오류가 발생했습니다.")
    def delete_checklist_sub_item(self, sub_item_id: str) -> None:
        self.datastore.delete_checklist_sub_item(sub_item_id)

    @action("체크리스트 항목 상태 갱신 중 오류가 발생했습니다.")
    def update_checklist_item_status(self, item_id: str) -> ChecklistItem:
        """Mark an item completed iff it has sub-items and all are completed."""
        sub_items = self.datastore.list_checklist_sub_items(item_id)
        is_completed = bool(sub_items) and all(s.is_completed for s in sub_items)
        item = self.datastore.update_checklist_item(item_id, {
            'is_completed': is_completed,
            'updated_at': _now(),
        })
        return self._find(item, 'Checklist item', item_id)

    @action("체크리스트 추천 생성 중 오류가 발생했습니다.")
    def generate_checklist_items(self, checklist_id: str, count: int = 5) -> List[str]:
        """Suggest additional items for a checklist (not stored)."""
        self._require_ai()
        count = self.normalize.positive_int(count, 'count')
        checklist = self._find(self.datastore.get_checklist(checklist_id), 'Checklist', checklist_id)
        event = self._find(self.datastore.get_event(checklist.event_id), 'Event', checklist.event_id)

        system, user = prompts.checklist_prompt(
            event.name,
            checklist.title,
            [item.title for item in checklist.items],
            count
        )
        text = self.completion_provider.complete(system, user, temperature=0.7, max_tokens=500)
        return prompts.parse_checklist_suggestions(text, count)

    # Programs

    def _build_program(
        self,
        program_id: str,
        name: str,
        duration: int,
        location_type: str,
        category: str,
        location: str,
        description: Optional[str] = None,
        source: Optional[ProgramSource] = None
    ) -> Program:
        return Program(
            id=program_id,
            name=self.normalize.title(name, 'name'),
            duration=self.normalize.positive_int(duration, 'duration'),
            location_type=self.normalize.choice(location_type, LOCATION_TYPES, 'location_type'),
            category=self.normalize.choice(category, PROGRAM_CATEGORIES, 'category'),
            location=location or '',
            description=self.normalize.description(description),
            source=source
        )

    @action("프로그램 생성 중 오류가 발생했습니다.")
    def create_program(
        self,
        event_id: str,
        name: str,
        duration: int,
        location_type: str,
        category: str,
        location: str,
        description: Optional[str] = None,
        source: Optional[Dict[str, str]] = None
    ) -> Program:
        program_source = None
        if source:
            program_source = ProgramSource(
                type=self.normalize.choice(source.get('type'), SOURCE_TYPES, 'source type'),
                id=self.normalize.require(source.get('id'), 'source id')
            )
        program = self._build_program(
            _new_id(), name, duration, location_type, category, location,
            description, program_source
        )
        return self.datastore.put_program(
            self.normalize.require(event_id, 'event_id'), program, created_at=_now()
        )

    @action("프로그램 수정 중 오류가 발생했습니다.")
    def update_program(
        self,
        program_id: str,
        name: str,
        duration: int,
        location_type: str,
        category: str,
        location: str,
        description: Optional[str] = None
    ) -> Program:
        program = self._build_program(
            program_id, name, duration, location_type, category, location, description
        )
        updated = self.datastore.update_program(program_id, {
            'name': program.name,
            'duration': program.duration,
            'location_type': program.location_type,
            'category': program.category,
            'location': program.location,
            'description': program.description,
        })
        return self._find(updated, 'Program', program_id)

    @action("프로그램 삭제 중 오류가 발생했습니다.")
    def delete_program(self, program_id: str) -> None:
        self.datastore.delete_program(program_id)

    @action("프로그램 목록 조회 중 오류가 발생했습니다.")
    def get_event_programs(self, event_id: str) -> List[Program]:
        return self.datastore.list_programs(event_id)

    @action("게임을 프로그램으로 변환하는 중 오류가 발생했습니다.")
    def convert_game_to_program(self, event_id: str, game_id: str) -> Program:
        game = self._find(self.datastore.get_game(game_id), 'Game', game_id)
        program = Program(
            id=_new_id(),
            name=game.name,
            duration=game.duration,
            location_type=game.location,
            category='game',
            location=LOCATION_LABELS.get(game.location, ''),
            description=game.description,
            source=ProgramSource(type='game', id=game.id)
        )
        return self.datastore.put_program(event_id, program, created_at=_now())

    @action("메모를 프로그램으로 변환하는 중 오류가 발생했습니다.")
    def convert_memo_to_program(self, event_id: str, memo_id: str) -> Program:
        """Turn a memo into a program through the completion provider."""
        self._require_ai()
        memo = self._find(self.datastore.get_memo(memo_id), 'Memo', memo_id)

        system, user = prompts.memo_program_prompt(memo.title, memo.content)
        analysis = self.completion_provider.complete_json(system, user, temperature=0.3)

        category = analysis.get('category')
        if category not in PROGRAM_CATEGORIES:
            category = 'etc'
        location_type = analysis.get('type')
        if location_type not in LOCATION_TYPES:
            location_type = 'both'

        program = self._build_program(
            _new_id(),
            analysis.get('name') or memo.title,
            analysis.get('duration'),
            location_type,
            category,
            analysis.get('location') or '',
            analysis.get('description'),
            ProgramSource(type='memo', id=memo.id)
        )
        return self.datastore.put_program(event_id, program, created_at=_now())

    # Schedules

    @action("일정표 저장 중 오류가 발생했습니다.")
    def save_schedule_blocks(self, event_id: str, blocks: Sequence[Dict[str, Any]]) -> List[ScheduleBlock]:
        """
        Replace an event's schedule.

        Args:
            event_id: Event id
            blocks: Dicts with a program "id" and optional "start_time", in
                running order

        Returns:
            The saved schedule blocks
        """
        schedule = []
        for index, block in enumerate(blocks):
            program_id = self.normalize.require(block.get('id'), 'block id')
            program = self._find(self.datastore.get_program(program_id), 'Program', program_id)
            schedule.append(ScheduleBlock.from_program(
                program,
                start_time=self.normalize.optional_time(block.get('start_time')),
                order=index
            ))

        self.datastore.replace_schedule_blocks(event_id, schedule)
        return schedule

    @action("일정표 불러오기 중 오류가 발생했습니다.")
    def get_schedule_blocks(self, event_id: str) -> List[ScheduleBlock]:
        return self.datastore.list_schedule_blocks(event_id)

    @action("일정표에 프로그램을 추가하는 중 오류가 발생했습니다.")
    def add_program_to_schedule(self, event_id: str, program_id: str) -> List[ScheduleBlock]:
        """Append a program to the schedule as an unscheduled block."""
        program = self._find(self.datastore.get_program(program_id), 'Program', program_id)
        blocks = schedule_model.add_block(self.datastore.list_schedule_blocks(event_id), program)
        self.datastore.replace_schedule_blocks(event_id, blocks)
        return blocks

    @action("일정표에서 프로그램을 제거하는 중 오류가 발생했습니다.")
    def remove_program_from_schedule(self, event_id: str, program_id: str) -> List[ScheduleBlock]:
        """Take a block off the schedule; the program itself is kept."""
        blocks = schedule_model.remove_block(self.datastore.list_schedule_blocks(event_id), program_id)
        self.datastore.replace_schedule_blocks(event_id, blocks)
        return blocks

    @action("시작 시간 변경 중 오류가 발생했습니다.")
    def update_block_time(self, event_id: str, block_id: str, start_time: Optional[str]) -> List[ScheduleBlock]:
        """Change a block's start time and store the re-sorted schedule."""
        blocks = self.datastore.list_schedule_blocks(event_id)
        if block_id not in {block.id for block in blocks}:
            raise NotFoundError(f"Schedule block not found: {block_id}")

        blocks = schedule_model.reorder_on_time_change(
            blocks, block_id, self.normalize.optional_time(start_time)
        )
        self.datastore.replace_schedule_blocks(event_id, blocks)
        return blocks

    @action("일정표 미리보기 생성 중 오류가 발생했습니다.")
    def get_schedule_preview(self, event_id: str) -> Dict[str, Any]:
        """
        Build the timed view of an event's schedule.

        Returns:
            Dict with "rows" (block, category label, start, end) in time order
            and the overall "start"/"end" labels (None when nothing is scheduled)
        """
        blocks = self.datastore.list_schedule_blocks(event_id)
        span = schedule_model.time_range(blocks)
        rows = [
            {'block': block, 'label': category_label(block.category), 'start': start, 'end': end}
            for block, start, end in schedule_model.render_rows(blocks)
        ]
        return {
            'rows': rows,
            'start': schedule_model.format_minutes(span.start_minutes) if span else None,
            'end': schedule_model.format_minutes(span.end_minutes) if span else None,
        }

    @action("일정표 생성 중 오류가 발생했습니다.")
    def generate_schedule(
        self,
        event_id: str,
        start_time: str,
        memo: Optional[str] = None
    ) -> List[ScheduleBlock]:
        """
        Draft a schedule from the event's programs (not stored).

        The completion provider chooses the running order; programs it leaves
        out keep their listed order after the ones it placed. Start times are
        assigned back to back from start_time.
        """
        self._require_ai()
        start_time = self.normalize.time(start_time)
        programs = self.datastore.list_programs(event_id)
        if not programs:
            raise ValueError("일정표를 생성할 프로그램이 없습니다.")

        system, user = prompts.schedule_prompt(programs, start_time, (memo or '').strip() or None)
        result = self.completion_provider.complete_json(system, user, temperature=0.7)

        by_id = {program.id: program for program in programs}
        ordered = []
        for program_id in result.get('order') or []:
            program = by_id.pop(program_id, None) if isinstance(program_id, str) else None
            if program:
                ordered.append(program)
        ordered.extend(p for p in programs if p.id in by_id)

        return schedule_model.sequence_blocks(ordered, start_time)
