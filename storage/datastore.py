"""DynamoDB datastore for event planning entities."""
import logging
import uuid
from dataclasses import asdict
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError

from planner.models import (
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
)

logger = logging.getLogger(__name__)


TABLES = (
    'events',
    'games',
    'event_games',
    'programs',
    'schedule_blocks',
    'checklists',
    'checklist_items',
    'checklist_sub_items',
    'memos',
    'memo_ai_contents',
)


def _plain(value: Any) -> Any:
    """Convert DynamoDB Decimals back to ints."""
    if isinstance(value, Decimal):
        return int(value)
    if isinstance(value, list):
        return [_plain(v) for v in value]
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    return value


def _to_item(record: Any, **extra) -> Dict[str, Any]:
    """Convert a dataclass to an item, dropping unset optional fields."""
    item = {k: v for k, v in asdict(record).items() if v is not None}
    item.update({k: v for k, v in extra.items() if v is not None})
    return item


class Datastore:
    """Manager for DynamoDB operations on planner entities."""

    BATCH_SIZE = 25  # DynamoDB batch operation limit

    def __init__(self, table_prefix: str = 'youth-planner', region_name: Optional[str] = None):
        """
        Initialize DynamoDB resource.

        Args:
            table_prefix: Prefix of the entity table names
            region_name: AWS region (default from the environment)
        """
        self.table_prefix = table_prefix
        self.dynamodb = boto3.resource('dynamodb', region_name=region_name)
        logger.info(f"Initialized Datastore with table prefix: {table_prefix}")

    def table_name(self, name: str) -> str:
        return f"{self.table_prefix}-{name}"

    def _table(self, name: str):
        return self.dynamodb.Table(self.table_name(name))

    def create_tables(self) -> None:
        """Create all entity tables (hash key "id", on-demand billing)."""
        for name in TABLES:
            table = self.dynamodb.create_table(
                TableName=self.table_name(name),
                KeySchema=[{'AttributeName': 'id', 'KeyType': 'HASH'}],
                AttributeDefinitions=[{'AttributeName': 'id', 'AttributeType': 'S'}],
                BillingMode='PAY_PER_REQUEST'
            )
            table.wait_until_exists()
            logger.info(f"Created table: {self.table_name(name)}")

    # Generic operations

    def _put(self, name: str, item: Dict[str, Any]) -> None:
        try:
            self._table(name).put_item(Item=item)
        except ClientError as e:
            logger.error(f"Error writing item to {name}: {e}")
            raise

    def _get(self, name: str, item_id: str) -> Optional[Dict[str, Any]]:
        try:
            response = self._table(name).get_item(Key={'id': item_id})
        except ClientError as e:
            logger.error(f"Error reading item {item_id} from {name}: {e}")
            raise
        item = response.get('Item')
        return _plain(item) if item else None

    def _update(self, name: str, item_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Update attributes of an existing item.

        Args:
            name: Entity table name
            item_id: Item id
            fields: Attributes to set (None values remove the attribute)

        Returns:
            The updated item, or None if it does not exist
        """
        set_parts = []
        remove_parts = []
        names = {}
        values = {}
        for index, (key, value) in enumerate(fields.items()):
            names[f"#f{index}"] = key
            if value is None:
                remove_parts.append(f"#f{index}")
            else:
                values[f":v{index}"] = value
                set_parts.append(f"#f{index} = :v{index}")

        expression = ''
        if set_parts:
            expression += 'SET ' + ', '.join(set_parts)
        if remove_parts:
            expression += ' REMOVE ' + ', '.join(remove_parts)

        kwargs = {
            'Key': {'id': item_id},
            'UpdateExpression': expression.strip(),
            'ExpressionAttributeNames': names,
            'ConditionExpression': Attr('id').exists(),
            'ReturnValues': 'ALL_NEW',
        }
        if values:
            kwargs['ExpressionAttributeValues'] = values

        try:
            response = self._table(name).update_item(**kwargs)
        except ClientError as e:
            if e.response['Error']['Code'] == 'ConditionalCheckFailedException':
                logger.warning(f"Item {item_id} not found in {name}")
                return None
            logger.error(f"Error updating item {item_id} in {name}: {e}")
            raise
        return _plain(response.get('Attributes'))

    def _delete(self, name: str, item_id: str) -> None:
        try:
            self._table(name).delete_item(Key={'id': item_id})
        except ClientError as e:
            logger.error(f"Error deleting item {item_id} from {name}: {e}")
            raise

    def _scan(self, name: str, **filters) -> List[Dict[str, Any]]:
        """
        Scan a table, optionally filtering on attribute equality.

        Returns:
            All matching items
        """
        kwargs = {}
        condition = None
        for key, value in filters.items():
            clause = Attr(key).eq(value)
            condition = clause if condition is None else condition & clause
        if condition is not None:
            kwargs['FilterExpression'] = condition

        try:
            table = self._table(name)
            response = table.scan(**kwargs)
            items = response.get('Items', [])

            # Handle pagination
            while 'LastEvaluatedKey' in response:
                response = table.scan(
                    ExclusiveStartKey=response['LastEvaluatedKey'],
                    **kwargs
                )
                items.extend(response.get('Items', []))

        except ClientError as e:
            logger.error(f"Error scanning {name}: {e}")
            raise

        return [_plain(item) for item in items]

    def _batch_put(self, name: str, items: Sequence[Dict[str, Any]]) -> int:
        """Write items in batches of 25; returns the count written."""
        count = 0
        for i in range(0, len(items), self.BATCH_SIZE):
            batch = items[i:i + self.BATCH_SIZE]
            try:
                with self._table(name).batch_writer() as writer:
                    for item in batch:
                        writer.put_item(Item=item)
                        count += 1
            except ClientError as e:
                logger.error(
                    f"Error writing {name} batch {i // self.BATCH_SIZE + 1}: {e}"
                )
                raise
        return count

    def _batch_delete(self, name: str, item_ids: Sequence[str]) -> int:
        """Delete items in batches of 25; returns the count deleted."""
        count = 0
        for i in range(0, len(item_ids), self.BATCH_SIZE):
            batch = item_ids[i:i + self.BATCH_SIZE]
            try:
                with self._table(name).batch_writer() as writer:
                    for item_id in batch:
                        writer.delete_item(Key={'id': item_id})
                        count += 1
            except ClientError as e:
                logger.error(
                    f"Error deleting {name} batch {i // self.BATCH_SIZE + 1}: {e}"
                )
                raise
        return count

    # Events

    def put_event(self, event: Event) -> Event:
        self._put('events', _to_item(event))
        return event

    def get_event(self, event_id: str) -> Optional[Event]:
        item = self._get('events', event_id)
        return Event(**item) if item else None

    def list_events(self) -> List[Event]:
        """Return all events, newest first."""
        events = [Event(**item) for item in self._scan('events')]
        return sorted(events, key=lambda e: e.created_at, reverse=True)

    # Games

    def put_game(self, game: Game) -> Game:
        self._put('games', _to_item(game))
        return game

    def get_game(self, game_id: str) -> Optional[Game]:
        item = self._get('games', game_id)
        return self._item_to_game(item) if item else None

    def list_games(self) -> List[Game]:
        games = [self._item_to_game(item) for item in self._scan('games')]
        return sorted(games, key=lambda g: g.name)

    def _item_to_game(self, item: Dict[str, Any]) -> Game:
        return Game(
            id=item['id'],
            name=item['name'],
            category=item['category'],
            description=item['description'],
            min_players=item['min_players'],
            max_players=item['max_players'],
            duration=item['duration'],
            location=item['location'],
            materials=item.get('materials', []),
            rules=item.get('rules', [])
        )

    def put_event_game(self, event_game: EventGame) -> EventGame:
        item = _to_item(event_game)
        item.pop('game', None)
        self._put('event_games', item)
        return event_game

    def list_event_games(self, event_id: str) -> List[EventGame]:
        """
        Return the games registered to an event, ordered by position.

        Registrations whose game no longer exists are skipped.
        """
        event_games = []
        for item in self._scan('event_games', event_id=event_id):
            game = self.get_game(item['game_id'])
            if game is None:
                logger.warning(
                    f"Registered game {item['game_id']} missing for event {event_id}"
                )
                continue
            event_games.append(EventGame(
                id=item['id'],
                event_id=item['event_id'],
                game_id=item['game_id'],
                order_index=item['order_index'],
                game=game
            ))
        return sorted(event_games, key=lambda eg: eg.order_index)

    def delete_event_game(self, event_game_id: str) -> None:
        self._delete('event_games', event_game_id)

    # Programs

    def put_program(self, event_id: str, program: Program, created_at: Optional[str] = None) -> Program:
        self._put('programs', self._program_to_item(event_id, program, created_at))
        return program

    def get_program(self, program_id: str) -> Optional[Program]:
        item = self._get('programs', program_id)
        return self._item_to_program(item) if item else None

    def update_program(self, program_id: str, fields: Dict[str, Any]) -> Optional[Program]:
        item = self._update('programs', program_id, fields)
        return self._item_to_program(item) if item else None

    def delete_program(self, program_id: str) -> None:
        self._delete('programs', program_id)

    def list_programs(self, event_id: str) -> List[Program]:
        """Return an event's programs, newest first."""
        items = self._scan('programs', event_id=event_id)
        items.sort(key=lambda item: item.get('created_at', ''), reverse=True)
        return [self._item_to_program(item) for item in items]

    def _program_to_item(self, event_id: str, program: Program, created_at: Optional[str]) -> Dict[str, Any]:
        item = {
            'id': program.id,
            'event_id': event_id,
            'name': program.name,
            'duration': program.duration,
            'location_type': program.location_type,
            'category': program.category,
            'location': program.location,
        }

        # Add optional fields if present
        if program.description is not None:
            item['description'] = program.description
        if program.source:
            item['source_type'] = program.source.type
            item['source_id'] = program.source.id
        if created_at:
            item['created_at'] = created_at

        return item

    def _item_to_program(self, item: Dict[str, Any]) -> Program:
        source = None
        if item.get('source_type'):
            source = ProgramSource(type=item['source_type'], id=item['source_id'])
        return Program(
            id=item['id'],
            name=item['name'],
            duration=item['duration'],
            location_type=item['location_type'],
            category=item['category'],
            location=item['location'],
            description=item.get('description'),
            source=source
        )

    # Schedule blocks

    def replace_schedule_blocks(self, event_id: str, blocks: Sequence[ScheduleBlock]) -> int:
        """
        Replace an event's schedule with the given blocks.

        Each row stores the program id, start time and list position.

        Returns:
            Count of rows written
        """
        existing = self._scan('schedule_blocks', event_id=event_id)
        if existing:
            self._batch_delete('schedule_blocks', [item['id'] for item in existing])

        rows = []
        for index, block in enumerate(blocks):
            row = {
                'id': str(uuid.uuid4()),
                'event_id': event_id,
                'program_id': block.id,
                'order_index': index,
            }
            if block.start_time:
                row['start_time'] = block.start_time
            rows.append(row)

        written = self._batch_put('schedule_blocks', rows)
        logger.info(f"Saved {written} schedule blocks for event {event_id}")
        return written

    def list_schedule_blocks(self, event_id: str) -> List[ScheduleBlock]:
        """Return an event's schedule joined with its programs, by position."""
        rows = sorted(
            self._scan('schedule_blocks', event_id=event_id),
            key=lambda row: row['order_index']
        )

        blocks = []
        for row in rows:
            program = self.get_program(row['program_id'])
            if program is None:
                logger.warning(
                    f"Scheduled program {row['program_id']} missing for event {event_id}"
                )
                continue
            blocks.append(ScheduleBlock.from_program(
                program,
                start_time=row.get('start_time'),
                order=row['order_index']
            ))
        return blocks

    # Checklists

    def put_checklist(self, checklist: Checklist) -> Checklist:
        item = _to_item(checklist)
        item.pop('items', None)
        self._put('checklists', item)
        return checklist

    def get_checklist(self, checklist_id: str) -> Optional[Checklist]:
        item = self._get('checklists', checklist_id)
        if not item:
            return None
        return self._item_to_checklist(item)

    def list_checklists(self, event_id: str) -> List[Checklist]:
        """Return an event's checklists with items and sub-items, newest first."""
        checklists = [
            self._item_to_checklist(item)
            for item in self._scan('checklists', event_id=event_id)
        ]
        return sorted(checklists, key=lambda c: c.created_at, reverse=True)

    def delete_checklist(self, checklist_id: str) -> None:
        """Delete a checklist with all of its items and sub-items."""
        sub_items = self._scan('checklist_sub_items', checklist_id=checklist_id)
        self._batch_delete('checklist_sub_items', [s['id'] for s in sub_items])
        items = self._scan('checklist_items', checklist_id=checklist_id)
        self._batch_delete('checklist_items', [i['id'] for i in items])
        self._delete('checklists', checklist_id)

    def _item_to_checklist(self, item: Dict[str, Any]) -> Checklist:
        item = dict(item)
        item.pop('items', None)
        return Checklist(**item, items=self.list_checklist_items(item['id']))

    def put_checklist_item(self, checklist_item: ChecklistItem) -> ChecklistItem:
        item = _to_item(checklist_item)
        item.pop('sub_items', None)
        self._put('checklist_items', item)
        return checklist_item

    def get_checklist_item(self, item_id: str) -> Optional[ChecklistItem]:
        item = self._get('checklist_items', item_id)
        if not item:
            return None
        return ChecklistItem(**item, sub_items=self.list_checklist_sub_items(item_id))

    def list_checklist_items(self, checklist_id: str) -> List[ChecklistItem]:
        items = [
            ChecklistItem(**item, sub_items=self.list_checklist_sub_items(item['id']))
            for item in self._scan('checklist_items', checklist_id=checklist_id)
        ]
        return sorted(items, key=lambda i: i.created_at)

    def update_checklist_item(self, item_id: str, fields: Dict[str, Any]) -> Optional[ChecklistItem]:
        item = self._update('checklist_items', item_id, fields)
        if not item:
            return None
        return ChecklistItem(**item, sub_items=self.list_checklist_sub_items(item_id))

    def delete_checklist_item(self, item_id: str) -> None:
        """Delete a checklist item with its sub-items."""
        sub_items = self._scan('checklist_sub_items', item_id=item_id)
        self._batch_delete('checklist_sub_items', [s['id'] for s in sub_items])
        self._delete('checklist_items', item_id)

    def put_checklist_sub_item(self, sub_item: ChecklistSubItem) -> ChecklistSubItem:
        self._put('checklist_sub_items', _to_item(sub_item))
        return sub_item

    def get_checklist_sub_item(self, sub_item_id: str) -> Optional[ChecklistSubItem]:
        item = self._get('checklist_sub_items', sub_item_id)
        return ChecklistSubItem(**item) if item else None

    def list_checklist_sub_items(self, item_id: str) -> List[ChecklistSubItem]:
        sub_items = [
            ChecklistSubItem(**item)
            for item in self._scan('checklist_sub_items', item_id=item_id)
        ]
        return sorted(sub_items, key=lambda s: s.created_at)

    def update_checklist_sub_item(self, sub_item_id: str, fields: Dict[str, Any]) -> Optional[ChecklistSubItem]:
        item = self._update('checklist_sub_items', sub_item_id, fields)
        return ChecklistSubItem(**item) if item else None

    def delete_checklist_sub_item(self, sub_item_id: str) -> None:
        self._delete('checklist_sub_items', sub_item_id)

    # Memos

    def put_memo(self, memo: Memo) -> Memo:
        self._put('memos', _to_item(memo))
        return memo

    def get_memo(self, memo_id: str) -> Optional[Memo]:
        item = self._get('memos', memo_id)
        return Memo(**item) if item else None

    def list_memos(self, event_id: str) -> List[Memo]:
        """Return an event's memos, newest first."""
        memos = [Memo(**item) for item in self._scan('memos', event_id=event_id)]
        return sorted(memos, key=lambda m: m.created_at, reverse=True)

    def update_memo(self, memo_id: str, fields: Dict[str, Any]) -> Optional[Memo]:
        item = self._update('memos', memo_id, fields)
        return Memo(**item) if item else None

    def delete_memo(self, memo_id: str) -> None:
        """Delete a memo with its generated contents."""
        contents = self._scan('memo_ai_contents', memo_id=memo_id)
        self._batch_delete('memo_ai_contents', [c['id'] for c in contents])
        self._delete('memos', memo_id)

    def put_memo_ai_content(self, content: MemoAIContent) -> MemoAIContent:
        self._put('memo_ai_contents', _to_item(content))
        return content

    def list_memo_ai_contents(self, memo_id: str) -> List[MemoAIContent]:
        """Return a memo's generated contents, newest first."""
        contents = [
            MemoAIContent(**item)
            for item in self._scan('memo_ai_contents', memo_id=memo_id)
        ]
        return sorted(contents, key=lambda c: c.created_at, reverse=True)
