"""Tests for EventPlanner actions against a mock datastore."""
from unittest.mock import Mock

import pytest

from completion.openai_provider import CompletionError
from planner.event_planner import AI_UNAVAILABLE_MESSAGE, EventPlanner
from planner.models import ActionResult


RECOMMENDATIONS = """1. 이름: "몸으로 말해요"
- 설명: 몸짓으로 단어를 설명하는 게임
- 필요 인원: 6-20명
- 소요 시간: 20분
- 준비물: 단어 카드
- 진행 방법:
  1) 두 팀으로 나눕니다.
  2) 몸짓으로 설명합니다.

2. 이름: "진실 혹은 거짓"
- 설명: 거짓 문장을 찾는 게임
- 필요 인원: 4명

3. 이름: "빙고"
- 설명: 숫자 빙고
- 필요 인원: 3명
- 소요 시간: 10분
- 준비물: 없음
"""


@pytest.fixture
def planner(datastore, completion_provider):
    return EventPlanner(datastore, completion_provider)


@pytest.fixture
def event(planner):
    result = planner.create_event(
        name='여름 수련회',
        date='2024/07/20',
        location='양평 수양관',
        event_type='outdoor'
    )
    assert result.success
    return result.data


def create_program(planner, event_id, name, duration, category='worship'):
    result = planner.create_program(
        event_id=event_id,
        name=name,
        duration=duration,
        location_type='indoor',
        category=category,
        location='본당'
    )
    assert result.success, result.error
    return result.data


class TestEvents:
    """Test cases for event actions."""

    def test_create_event_normalizes_date(self, event):
        assert event.date == '2024-07-20'
        assert event.status == 'planning'
        assert event.created_at == event.updated_at

    def test_create_event_invalid_type(self, planner):
        result = planner.create_event(
            name='행사', date='2024-07-20', location='교회', event_type='online'
        )

        assert result.success is False
        assert 'event_type' in result.error

    def test_create_event_invalid_date(self, planner):
        result = planner.create_event(
            name='행사', date='다음 주', location='교회', event_type='indoor'
        )

        assert not result.success

    def test_get_event(self, planner, event):
        assert planner.get_event(event.id).data == event
        assert not planner.get_event('missing').success

    def test_get_events(self, planner, event):
        result = planner.get_events()

        assert result.success
        assert [e.id for e in result.data] == [event.id]

    def test_unknown_argument_raises(self, planner):
        """Test that arguments not fitting an action are not swallowed."""
        with pytest.raises(TypeError):
            planner.get_event(id='event-1')

    def test_datastore_failure_becomes_result(self, completion_provider):
        """Test that collaborator exceptions never cross the action boundary."""
        broken_store = Mock()
        broken_store.list_events.side_effect = RuntimeError('connection lost')
        planner = EventPlanner(broken_store, completion_provider)

        result = planner.get_events()

        assert result == ActionResult(success=False, error='행사 목록 조회 중 오류가 발생했습니다.')


class TestGames:
    """Test cases for game actions."""

    def test_ai_recommendations_parsed(self, planner, completion_provider):
        completion_provider.complete.return_value = RECOMMENDATIONS

        result = planner.get_ai_game_recommendations(
            category='team', players=12, duration=20, location='indoor'
        )

        assert result.success
        assert result.data['recommendations'] == RECOMMENDATIONS
        assert [g.name for g in result.data['games']] == ['몸으로 말해요', '빙고']
        system, user = completion_provider.complete.call_args.args
        assert '참여 인원: 12명' in user
        assert '1. 이름:' in user

    def test_ai_unavailable(self, planner, completion_provider):
        completion_provider.is_available.return_value = False

        result = planner.get_ai_game_recommendations(
            category='team', players=12, duration=20, location='indoor'
        )

        assert result.error == AI_UNAVAILABLE_MESSAGE
        completion_provider.complete.assert_not_called()

    def test_ai_failure(self, planner, completion_provider):
        completion_provider.complete.side_effect = CompletionError('timeout')

        result = planner.get_ai_game_recommendations(
            category='team', players=12, duration=20, location='indoor'
        )

        assert not result.success
        assert result.error == 'AI 게임 추천 중 오류가 발생했습니다.'

    def test_save_recommended_game(self, planner):
        result = planner.save_recommended_game(
            recommendations=RECOMMENDATIONS, index=1, category='icebreaker', location='both'
        )

        assert result.success
        game = result.data
        assert game.name == '빙고'
        assert (game.min_players, game.max_players) == (2, 3)
        assert game.materials == []
        assert planner.get_games().data == [game]

    def test_save_recommended_game_out_of_range(self, planner):
        result = planner.save_recommended_game(
            recommendations=RECOMMENDATIONS, index=5, category='team', location='both'
        )

        assert not result.success

    def test_save_game_rejects_inverted_range(self, planner):
        result = planner.save_game(
            name='게임', category='team', description='', min_players=10,
            max_players=4, duration=10, location='indoor'
        )

        assert not result.success

    def test_register_and_unregister_games(self, planner, event):
        first = planner.save_game(
            name='A', category='team', description='a', min_players=2,
            max_players=10, duration=10, location='indoor'
        ).data
        second = planner.save_game(
            name='B', category='quiet', description='b', min_players=2,
            max_players=10, duration=15, location='indoor'
        ).data

        planner.register_games_to_event(event_id=event.id, game_ids=[first.id])
        planner.register_games_to_event(event_id=event.id, game_ids=[second.id])

        registered = planner.get_event_games(event.id).data
        assert [(eg.game.name, eg.order_index) for eg in registered] == [('A', 0), ('B', 1)]

        assert planner.unregister_game_from_event(event.id, registered[0].id).success
        assert [eg.game.name for eg in planner.get_event_games(event.id).data] == ['B']
        assert not planner.unregister_game_from_event(event.id, 'missing').success

    def test_register_unknown_game(self, planner, event):
        result = planner.register_games_to_event(event_id=event.id, game_ids=['nope'])

        assert not result.success
        assert 'Game not found' in result.error


class TestMemos:
    """Test cases for memo actions."""

    def test_memo_lifecycle(self, planner, event):
        memo = planner.create_memo(event_id=event.id, title='회의록', content='식사 메뉴 논의').data

        updated = planner.update_memo(memo_id=memo.id, title='회의록 1', content='식사 메뉴 확정').data
        assert updated.title == '회의록 1'
        assert updated.created_at == memo.created_at

        assert [m.id for m in planner.get_event_memos(event.id).data] == [memo.id]

        assert planner.delete_memo(memo.id).success
        assert planner.get_event_memos(event.id).data == []

    def test_update_missing_memo(self, planner):
        assert not planner.update_memo(memo_id='missing', title='t', content='c').success

    def test_generate_memo_summary(self, planner, event, completion_provider):
        memo = planner.create_memo(event_id=event.id, title='회의록', content='장소 예약 필요').data
        completion_provider.complete.return_value = '장소 예약이 필요합니다.'

        result = planner.generate_memo_ai_content(memo_id=memo.id, content_type='summary')

        assert result.success
        assert result.data.content == '장소 예약이 필요합니다.'
        assert result.data.type == 'summary'
        assert completion_provider.complete.call_args.kwargs['max_tokens'] == 500
        assert [c.id for c in planner.get_memo_ai_contents(memo.id).data] == [result.data.id]

    def test_generate_memo_invalid_type(self, planner, event):
        memo = planner.create_memo(event_id=event.id, title='회의록', content='내용').data

        assert not planner.generate_memo_ai_content(memo_id=memo.id, content_type='poem').success


class TestChecklists:
    """Test cases for checklist actions."""

    def test_checklist_with_items(self, planner, event):
        checklist = planner.create_checklist(event_id=event.id, title='준비물', due_date='2024-07-10').data
        item = planner.create_checklist_item(checklist_id=checklist.id, title='버스 예약').data
        sub_item = planner.create_checklist_sub_item(item_id=item.id, title='견적 받기').data

        checklists = planner.get_event_checklists(event.id).data

        assert checklists[0].due_date == '2024-07-10'
        assert checklists[0].items[0].id == item.id
        assert checklists[0].items[0].sub_items[0].id == sub_item.id
        assert sub_item.checklist_id == checklist.id

    def test_item_status_follows_sub_items(self, planner, event):
        checklist = planner.create_checklist(event_id=event.id, title='준비', due_date='2024-07-10').data
        item = planner.create_checklist_item(checklist_id=checklist.id, title='식사').data

        # No sub-items: not completed
        assert planner.update_checklist_item_status(item.id).data.is_completed is False

        first = planner.create_checklist_sub_item(item_id=item.id, title='메뉴').data
        second = planner.create_checklist_sub_item(item_id=item.id, title='예약').data
        planner.update_checklist_sub_item(sub_item_id=first.id, is_completed=True)

        assert planner.update_checklist_item_status(item.id).data.is_completed is False

        planner.update_checklist_sub_item(sub_item_id=second.id, is_completed=True)

        assert planner.update_checklist_item_status(item.id).data.is_completed is True

    def test_item_toggle_and_delete(self, planner, event):
        checklist = planner.create_checklist(event_id=event.id, title='준비', due_date='2024-07-10').data
        item = planner.create_checklist_item(checklist_id=checklist.id, title='현수막').data

        assert planner.update_checklist_item(item_id=item.id, is_completed=True).data.is_completed

        assert planner.delete_checklist_item(item.id).success
        assert planner.get_event_checklists(event.id).data[0].items == []

        assert planner.delete_checklist(checklist.id).success
        assert planner.get_event_checklists(event.id).data == []

    def test_item_for_missing_checklist(self, planner):
        assert not planner.create_checklist_item(checklist_id='missing', title='x').success

    def test_generate_checklist_items(self, planner, event, completion_provider):
        checklist = planner.create_checklist(event_id=event.id, title='준비물', due_date='2024-07-10').data
        planner.create_checklist_item(checklist_id=checklist.id, title='버스 예약')
        completion_provider.complete.return_value = (
            "- 구급상자 준비\n• 참가자 명단 작성\n\n간식 구매\n이름표 제작"
        )

        result = planner.generate_checklist_items(checklist_id=checklist.id, count=3)

        assert result.data == ['구급상자 준비', '참가자 명단 작성', '간식 구매']
        system, user = completion_provider.complete.call_args.args
        assert '- 버스 예약' in user
        assert '여름 수련회' in user


class TestPrograms:
    """Test cases for program actions."""

    def test_create_and_update_program(self, planner, event):
        program = create_program(planner, event.id, '아침 예배', 40)

        result = planner.update_program(
            program_id=program.id, name='아침 예배', duration=50,
            location_type='indoor', category='worship', location='소예배실'
        )

        assert result.data.duration == 50
        assert result.data.location == '소예배실'
        assert [p.duration for p in planner.get_event_programs(event.id).data] == [50]

    def test_create_program_invalid_category(self, planner, event):
        result = planner.create_program(
            event_id=event.id, name='x', duration=10, location_type='indoor',
            category='party', location=''
        )

        assert not result.success

    def test_create_program_invalid_duration(self, planner, event):
        result = planner.create_program(
            event_id=event.id, name='x', duration=0, location_type='indoor',
            category='etc', location=''
        )

        assert not result.success

    def test_convert_game_to_program(self, planner, event):
        game = planner.save_game(
            name='보물찾기', category='active', description='쪽지 찾기', min_players=4,
            max_players=30, duration=30, location='outdoor'
        ).data

        program = planner.convert_game_to_program(event.id, game.id).data

        assert program.name == '보물찾기'
        assert program.category == 'game'
        assert program.location_type == 'outdoor'
        assert program.source.type == 'game'
        assert program.source.id == game.id
        assert planner.get_event_programs(event.id).data == [program]

    def test_convert_memo_to_program(self, planner, event, completion_provider):
        memo = planner.create_memo(event_id=event.id, title='저녁 찬양', content='30분 찬양').data
        completion_provider.complete_json.return_value = {
            'name': '저녁 찬양',
            'duration': 30,
            'type': 'indoor',
            'category': 'praise',
            'location': '본당',
            'description': '찬양팀 인도',
        }

        program = planner.convert_memo_to_program(event.id, memo.id).data

        assert program.category == 'praise'
        assert program.duration == 30
        assert program.source.type == 'memo'
        assert program.source.id == memo.id

    def test_convert_memo_unknown_category_falls_back(self, planner, event, completion_provider):
        memo = planner.create_memo(event_id=event.id, title='자유 시간', content='쉬기').data
        completion_provider.complete_json.return_value = {
            'name': '자유 시간', 'duration': 60, 'type': 'anywhere', 'category': 'free'
        }

        program = planner.convert_memo_to_program(event.id, memo.id).data

        assert program.category == 'etc'
        assert program.location_type == 'both'

    def test_delete_program_keeps_other_programs(self, planner, event):
        first = create_program(planner, event.id, 'A', 10)
        second = create_program(planner, event.id, 'B', 10)

        assert planner.delete_program(first.id).success
        assert planner.get_event_programs(event.id).data == [second]


class TestSchedules:
    """Test cases for schedule actions."""

    def test_save_and_load_schedule(self, planner, event):
        worship = create_program(planner, event.id, '예배', 60)
        meal = create_program(planner, event.id, '점심', 60, category='meal')

        saved = planner.save_schedule_blocks(event.id, [
            {'id': meal.id, 'start_time': '12:00'},
            {'id': worship.id, 'start_time': '10:00 AM'},
        ])

        assert saved.success
        blocks = planner.get_schedule_blocks(event.id).data
        assert [b.name for b in blocks] == ['점심', '예배']
        assert [b.start_time for b in blocks] == ['12:00', '10:00']

    def test_save_schedule_unknown_program(self, planner, event):
        result = planner.save_schedule_blocks(event.id, [{'id': 'missing'}])

        assert not result.success

    def test_builder_flow(self, planner, event):
        worship = create_program(planner, event.id, '예배', 60)
        lecture = create_program(planner, event.id, '강의', 90, category='lecture')

        planner.add_program_to_schedule(event.id, worship.id)
        blocks = planner.add_program_to_schedule(event.id, lecture.id).data
        assert [b.start_time for b in blocks] == [None, None]

        planner.update_block_time(event.id, lecture.id, '09:00')
        blocks = planner.update_block_time(event.id, worship.id, '10:30').data
        assert [b.name for b in blocks] == ['강의', '예배']

        preview = planner.get_schedule_preview(event.id).data
        assert [(r['block'].name, r['start'], r['end']) for r in preview['rows']] == [
            ('강의', '09:00', '10:30'),
            ('예배', '10:30', '11:30'),
        ]
        assert [r['label'] for r in preview['rows']] == ['강의/설교', '예배']
        assert (preview['start'], preview['end']) == ('09:00', '11:30')

        blocks = planner.remove_program_from_schedule(event.id, worship.id).data
        assert [b.name for b in blocks] == ['강의']
        assert len(planner.get_event_programs(event.id).data) == 2

    def test_preview_without_times(self, planner, event):
        program = create_program(planner, event.id, '예배', 60)
        planner.add_program_to_schedule(event.id, program.id)

        preview = planner.get_schedule_preview(event.id).data

        assert preview == {'rows': [], 'start': None, 'end': None}

    def test_update_time_unknown_block(self, planner, event):
        assert not planner.update_block_time(event.id, 'missing', '09:00').success

    def test_generate_schedule(self, planner, event, completion_provider):
        praise = create_program(planner, event.id, '찬양', 20, category='praise')
        lecture = create_program(planner, event.id, '강의', 60, category='lecture')
        meal = create_program(planner, event.id, '점심', 50, category='meal')
        completion_provider.complete_json.return_value = {
            'order': [praise.id, 'unknown-id', lecture.id]
        }

        result = planner.generate_schedule(event.id, start_time='09:00', memo='점심은 마지막')

        assert result.success
        blocks = result.data
        assert [b.id for b in blocks] == [praise.id, lecture.id, meal.id]
        assert [b.start_time for b in blocks] == ['09:00', '09:20', '10:20']
        system, user = completion_provider.complete_json.call_args.args
        assert '점심은 마지막' in user
        # Drafts are not stored
        assert planner.get_schedule_blocks(event.id).data == []

    def test_generate_schedule_without_programs(self, planner, event):
        result = planner.generate_schedule(event.id, start_time='09:00')

        assert not result.success
