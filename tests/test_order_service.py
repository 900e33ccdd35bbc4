"""
模拟下单测试
"""
import pytest

from comico.services.comic_service import ComicService
from comico.services.order_service import PLANS, OrderService


def _comic(status="generated", user_id="user-1"):
    service = ComicService()
    record = service.create_comic(user_id, "A dog finds a key.")
    return service.update_comic(record.id, status=status)


class TestOrderService:
    """OrderService 测试"""

    def test_checkout_marks_comic_ordered(self, test_db):
        comic = _comic()

        order = OrderService().checkout(
            "user-1",
            comic.id,
            "Ultimate Comic",
            "reader@example.com",
            {"first_name": "Ada", "city": "London", "zip_code": "N1"},
        )

        assert order.amount == PLANS["Ultimate Comic"]["price"]
        assert order.pages == 48
        assert order.payment_status == "completed"
        assert order.payment_reference.startswith("mock_")
        assert order.city == "London"
        assert order.estimated_delivery > order.created_at

        refreshed = ComicService().get_comic(comic.id)
        assert refreshed.status == "ordered"
        assert refreshed.selected_plan == "Ultimate Comic"
        assert [o.id for o in OrderService().list_by_user("user-1")] == [order.id]

    def test_partial_comic_can_be_ordered(self, test_db):
        comic = _comic(status="partial")
        assert OrderService().checkout("user-1", comic.id, "Starter Comic", "a@b.c").pages == 20

    def test_unknown_plan(self, test_db):
        comic = _comic()
        with pytest.raises(ValueError):
            OrderService().checkout("user-1", comic.id, "Mega Comic", "a@b.c")

    def test_missing_comic(self, test_db):
        with pytest.raises(LookupError):
            OrderService().checkout("user-1", "missing", "Pro Comic", "a@b.c")

    def test_other_users_comic(self, test_db):
        comic = _comic(user_id="user-2")
        with pytest.raises(PermissionError):
            OrderService().checkout("user-1", comic.id, "Pro Comic", "a@b.c")

    @pytest.mark.parametrize("status", ["draft", "generating", "failed", "ordered"])
    def test_status_not_orderable(self, test_db, status):
        comic = _comic(status=status)
        with pytest.raises(ValueError):
            OrderService().checkout("user-1", comic.id, "Pro Comic", "a@b.c")
