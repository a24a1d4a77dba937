"""Parser for game recommendations written as numbered markdown blocks."""
import logging
import math
import re
import uuid
from typing import List, Optional

from planner.models import Game, ParsedGame, PlayerRange

logger = logging.getLogger(__name__)


BLOCK_SPLIT_RE = re.compile(r'(?=\d+\.\s*이름:)')
NAME_RE = re.compile(r'^\d+\.\s*이름:\s*(.*)$')
FIELD_RE = re.compile(r'^-\s*(설명|필요 인원|소요 시간|준비물|진행 방법)\s*:\s*(.*)$')
RULE_RE = re.compile(r'^\s*\d+[).]\s*(.+)$')
PLAYER_RANGE_RE = re.compile(r'(\d+)\s*[-~]\s*(\d+)\s*(?:명)?')
PLAYER_COUNT_RE = re.compile(r'(\d+)\s*(?:명)?')
FIRST_INT_RE = re.compile(r'(\d+)')

NO_MATERIALS = '없음'
MIN_PLAYERS_FLOOR = 2


class GameMarkdownParser:
    """Extracts structured game records from generated recommendation text."""

    def parse_games(self, markdown: str) -> List[ParsedGame]:
        """
        Parse numbered game blocks into ParsedGame records.

        Blocks missing a name, description, player count or duration are
        skipped. Never raises for malformed input.

        Args:
            markdown: Free text with blocks starting "<n>. 이름: ..."

        Returns:
            Parsed games in source order
        """
        games = []
        if not markdown:
            return games

        blocks = [b for b in BLOCK_SPLIT_RE.split(markdown) if b.strip()]

        for block in blocks:
            game = self._parse_block(block)
            if game:
                games.append(game)

        logger.info(f"Parsed {len(games)} games out of {len(blocks)} blocks")
        return games

    def _parse_block(self, block: str) -> Optional[ParsedGame]:
        """
        Parse a single game block.

        Args:
            block: Text of one enumerated game

        Returns:
            ParsedGame or None if a required field is missing
        """
        name = None
        description = None
        players = None
        duration = None
        materials: List[str] = []
        rules: List[str] = []
        collecting_rules = False

        for raw_line in block.split('\n'):
            line = raw_line.strip()
            if not line:
                continue

            if collecting_rules:
                if line.startswith('-'):
                    # A new field ends the rules; handle the line below
                    collecting_rules = False
                else:
                    rule_match = RULE_RE.match(line)
                    if rule_match:
                        rules.append(rule_match.group(1).strip())
                    elif rules:
                        rules[-1] = f"{rules[-1]} {line}"
                    else:
                        rules.append(line)
                    continue

            name_match = NAME_RE.match(line)
            if name_match:
                name = self._strip_quotes(name_match.group(1)) or None
                continue

            field_match = FIELD_RE.match(line)
            if not field_match:
                continue

            label, value = field_match.group(1), field_match.group(2).strip()

            if label == '설명':
                description = value or None
            elif label == '필요 인원':
                players = self._parse_players(value)
            elif label == '소요 시간':
                duration = self._parse_duration(value)
            elif label == '준비물':
                materials = self._parse_materials(value)
            elif label == '진행 방법':
                collecting_rules = True

        rules = [rule.strip() for rule in rules if rule.strip()]

        if not (name and description and players and duration):
            logger.debug(f"Skipping incomplete game block: {block[:40]!r}")
            return None

        return ParsedGame(
            name=name,
            description=description,
            players=players,
            duration=duration,
            materials=materials,
            rules=rules
        )

    def _strip_quotes(self, text: str) -> str:
        text = text.strip()
        if len(text) >= 2 and text[0] in '"“\'' and text[-1] in '"”\'':
            text = text[1:-1]
        return text.strip()

    def _parse_players(self, text: str) -> Optional[PlayerRange]:
        """
        Parse a participant count.

        Args:
            text: Count text (e.g., "2-6명", "4~8", "10명")

        Returns:
            PlayerRange or None if no count is found
        """
        range_match = PLAYER_RANGE_RE.search(text)
        if range_match:
            return PlayerRange(
                min=int(range_match.group(1)),
                max=int(range_match.group(2))
            )

        count_match = PLAYER_COUNT_RE.search(text)
        if count_match:
            count = int(count_match.group(1))
            return PlayerRange(
                min=max(MIN_PLAYERS_FLOOR, math.floor(count * 0.5)),
                max=count
            )

        return None

    def _parse_duration(self, text: str) -> Optional[int]:
        duration_match = FIRST_INT_RE.search(text)
        if duration_match:
            return int(duration_match.group(1))
        return None

    def _parse_materials(self, text: str) -> List[str]:
        if not text or text.lower() == NO_MATERIALS:
            return []
        return [item.strip() for item in text.split(',')]


def parse_games(markdown: str) -> List[ParsedGame]:
    """Parse game recommendation markdown into ParsedGame records."""
    return GameMarkdownParser().parse_games(markdown)


def convert_to_game(parsed_game: ParsedGame, category: str, location: str) -> Game:
    """
    Build a Game record from a parsed recommendation.

    Args:
        parsed_game: Parsed recommendation
        category: Game category
        location: Location type (indoor, outdoor, both)

    Returns:
        Game with a freshly generated id
    """
    return Game(
        id=str(uuid.uuid4()),
        name=parsed_game.name,
        category=category,
        description=parsed_game.description,
        min_players=parsed_game.players.min,
        max_players=parsed_game.players.max,
        duration=parsed_game.duration,
        location=location,
        materials=list(parsed_game.materials),
        rules=list(parsed_game.rules)
    )
