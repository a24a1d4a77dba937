"""Prompt builders for the completion provider."""
import json
from typing import Dict, List, Optional, Sequence, Tuple

from planner.models import PROGRAM_CATEGORIES, Program


GAME_SYSTEM_PROMPT = (
    "당신은 교회 청년부 행사 게임 전문가입니다. "
    "주어진 조건에 맞는 최적의 게임을 추천해주세요."
)

MEMO_SUMMARY_SYSTEM_PROMPT = (
    "당신은 회의록과 메모를 요약하는 전문가입니다. "
    "핵심 내용을 간단명료하게 정리해주세요."
)

MEMO_SUGGESTIONS_SYSTEM_PROMPT = (
    "당신은 교회 청년부 행사 기획 전문가입니다. "
    "메모 내용을 분석하여 실용적인 제안을 해주세요."
)

CHECKLIST_SYSTEM_PROMPT = (
    "당신은 교회 청년부 행사 준비를 돕는 전문가입니다. "
    "기존 체크리스트를 검토하고 보완이 필요한 항목들을 추천해주세요."
)

SCHEDULE_SYSTEM_PROMPT = (
    "당신은 교회 청년부 행사 일정 기획 전문가입니다. "
    "프로그램의 흐름과 참가자의 집중도를 고려하여 진행 순서를 정해주세요. "
    "반드시 JSON 객체로만 응답해주세요."
)

MEMO_PROGRAM_SYSTEM_PROMPT = (
    "당신은 교회 청년부 행사 기획 전문가입니다. "
    "메모 내용을 분석하여 행사 프로그램 하나로 정리해주세요. "
    "반드시 JSON 객체로만 응답해주세요."
)


def game_recommendation_prompt(filters: Dict) -> Tuple[str, str]:
    """Build the prompt asking for three games in the numbered format."""
    user = f"""청년부 행사를 위한 게임을 추천해주세요.

조건:
- 카테고리: {filters['category']}
- 참여 인원: {filters['players']}명
- 소요 시간: {filters['duration']}분
- 장소: {filters['location']}

다음 형식으로 3개의 게임을 추천해주세요:
1. 이름: [게임 이름]
- 설명: (게임 방법과 목적을 간단히)
- 필요 인원: (최소-최대)
- 소요 시간: (분)
- 준비물: (필요한 경우)
- 진행 방법: (단계별로)

각 게임은 청년부 행사의 특성을 고려하여 재미있고 의미있는 활동이 되도록 해주세요."""
    return GAME_SYSTEM_PROMPT, user


def memo_prompt(content: str, content_type: str) -> Tuple[str, str]:
    """Build the memo summary or suggestions prompt."""
    if content_type == 'summary':
        user = (
            f"다음 회의록/메모 내용을 간단히 요약해주세요:\n\n{content}\n\n"
            "핵심 내용만 간단명료하게 정리해주세요."
        )
        return MEMO_SUMMARY_SYSTEM_PROMPT, user

    user = (
        f"다음 회의록/메모 내용을 바탕으로 개선 아이디어나 추가로 고려해볼 사항을 "
        f"제안해주세요:\n\n{content}\n\n실용적이고 구체적인 제안을 해주세요."
    )
    return MEMO_SUGGESTIONS_SYSTEM_PROMPT, user


def checklist_prompt(
    event_title: str,
    checklist_title: str,
    current_items: Sequence[str],
    count: int
) -> Tuple[str, str]:
    """Build the prompt asking for additional checklist items."""
    item_lines = "\n".join(f"- {item}" for item in current_items)
    user = f"""교회 청년부 행사 "{event_title}"의 "{checklist_title}" 체크리스트에 대해 추가로 필요한 항목들을 추천해주세요.

현재 체크리스트 항목:
{item_lines}

위 항목들을 검토하고, 보완/개선/추가로 필요한 사항을 정확히 {count}개 추천해주세요.
각 항목은 간단명료하게 작성하고, 줄바꿈으로 구분해주세요.

한 번에 한 가지 일을 추천해 주세요.
기존에 있는 항목에 무리한 보완/개선을 하지 말아주세요.

앞에 '-' 나 '•' 같은 기호를 붙이지 말아주세요.
기존 항목과 중복되지 않도록 해주세요.

예시:
장소 예약 확인
참가자 명단 작성
필요한 물품 구매
..."""
    return CHECKLIST_SYSTEM_PROMPT, user


def schedule_prompt(
    programs: Sequence[Program],
    start_time: str,
    memo: Optional[str] = None
) -> Tuple[str, str]:
    """Build the prompt asking for a running order of the given programs."""
    program_list = [
        {
            'id': program.id,
            'name': program.name,
            'duration': program.duration,
            'category': program.category,
            'type': program.location_type,
        }
        for program in programs
    ]
    user = (
        f"행사는 {start_time}에 시작합니다. 아래 프로그램들의 진행 순서를 정해주세요.\n\n"
        f"프로그램 목록:\n{json.dumps(program_list, ensure_ascii=False, indent=2)}\n\n"
    )
    if memo:
        user += f"추가 고려사항:\n{memo}\n\n"
    user += '다음 형식으로 응답해주세요: {"order": ["프로그램 id", ...]}'
    return SCHEDULE_SYSTEM_PROMPT, user


def memo_program_prompt(title: str, content: str) -> Tuple[str, str]:
    """Build the prompt turning a memo into a single program definition."""
    categories = ", ".join(PROGRAM_CATEGORIES)
    user = f"""다음 메모를 분석하여 행사 프로그램으로 정리해주세요.

제목: {title}
내용:
{content}

다음 형식의 JSON으로 응답해주세요:
{{"name": "프로그램 이름", "duration": 분 단위 정수, "type": "indoor|outdoor|both",
"category": "{categories} 중 하나", "location": "장소", "description": "간단한 설명"}}"""
    return MEMO_PROGRAM_SYSTEM_PROMPT, user


def parse_checklist_suggestions(content: str, count: int) -> List[str]:
    """Split generated checklist text into at most count clean items."""
    items = []
    for line in content.split('\n'):
        item = line.lstrip('-• \t').strip()
        if item:
            items.append(item)
    return items[:count]
