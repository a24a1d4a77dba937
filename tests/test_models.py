"""Unit tests for planner data models."""
import pytest

from planner.models import ActionResult, PlayerRange, category_label


class TestCategoryLabel:
    """Test cases for category_label."""

    @pytest.mark.parametrize("category,expected", [
        ('game', '게임'),
        ('worship', '예배'),
        ('ice_break', '아이스브레이크'),
        ('etc', '기타'),
    ])
    def test_known_categories(self, category, expected):
        assert category_label(category) == expected

    @pytest.mark.parametrize("category", ['party', '', 'GAME'])
    def test_unknown_category_falls_back(self, category):
        assert category_label(category) == '기타'


class TestActionResult:
    """Test cases for ActionResult serialization."""

    def test_ok_to_dict_converts_dataclasses(self):
        result = ActionResult.ok([PlayerRange(min=4, max=8)])

        assert result.to_dict() == {'success': True, 'data': [{'min': 4, 'max': 8}]}

    def test_fail_to_dict(self):
        assert ActionResult.fail('오류').to_dict() == {'success': False, 'error': '오류'}
