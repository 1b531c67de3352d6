"""
Tests for the expense service layer and the audit logger.

Requires DB: runs on the SQLite test database by default.
"""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import select

from expense_api.models.audit import AuditAction, AuditLog
from expense_api.models.expense import ExpenseStatus
from expense_api.schemas.expense import ExpenseUpdate
from expense_api.services import expenses as expense_service
from expense_api.services.audit import logger as audit


pytestmark = pytest.mark.usefixtures("db")


class TestReferenceNumbers:
    def test_first_of_the_day(self, db):
        assert expense_service.generate_reference_number(db, date(2031, 1, 2)) == "EXP-20310102-0001"

    def test_continues_existing_sequence(self, db, make_expense):
        today = datetime.now(timezone.utc).date()
        make_expense()
        make_expense()
        assert expense_service.generate_reference_number(db, today).endswith("-0003")

    def test_sequence_is_per_day(self, db, make_expense):
        make_expense()
        assert expense_service.generate_reference_number(db, date(2031, 1, 2)).endswith("-0001")

    def test_sequence_past_four_digits(self, db, make_expense):
        make_expense().reference_number = "EXP-20310102-9999"
        make_expense().reference_number = "EXP-20310102-10000"
        db.flush()
        assert expense_service.generate_reference_number(db, date(2031, 1, 2)) == "EXP-20310102-10001"


class TestFindExpenses:
    def test_email_filter_is_case_insensitive_on_input(self, db, make_expense):
        make_expense()
        rows, total = expense_service.find_expenses(
            db, expense_service.ExpenseFilters(email="VIEWER@example.com")
        )
        assert total == 1
        assert rows[0].email == "viewer@example.com"

    def test_search_matches_reference_number(self, db, make_expense):
        target = make_expense()
        make_expense(invoice_number="OTHER-1")
        rows, total = expense_service.find_expenses(
            db, expense_service.ExpenseFilters(search=target.reference_number)
        )
        assert [r.id for r in rows] == [target.id]

    @pytest.mark.parametrize("term", ["%", "_"])
    def test_search_wildcards_match_literally(self, db, make_expense, term):
        make_expense(vendor_name="Bar Central")
        target = make_expense(vendor_name="Cafe 100% Natural_Bio")
        rows, total = expense_service.find_expenses(
            db, expense_service.ExpenseFilters(search=term)
        )
        assert total == 1
        assert rows[0].id == target.id

    def test_total_counts_all_pages(self, db, make_expense):
        for _ in range(5):
            make_expense()
        rows, total = expense_service.find_expenses(
            db, expense_service.ExpenseFilters(), page=3, limit=2
        )
        assert total == 5
        assert len(rows) == 1

    @pytest.mark.parametrize("total,limit,pages", [(0, 20, 0), (1, 20, 1), (40, 20, 2), (41, 20, 3)])
    def test_total_pages(self, total, limit, pages):
        assert expense_service.total_pages(total, limit) == pages


class TestStatusChange:
    def test_approval_stamps(self, db, sample_expense, admin_user):
        previous = expense_service.apply_status_change(
            db, sample_expense, ExpenseStatus.READY_TO_PAY, actor_id=admin_user.id
        )
        assert previous == ExpenseStatus.SUBMITTED
        assert sample_expense.approved_by == admin_user.id
        assert sample_expense.approved_at is not None
        assert sample_expense.paid_at is None

    def test_decline_keeps_reason_and_comments(self, db, sample_expense, admin_user):
        expense_service.apply_status_change(
            db,
            sample_expense,
            ExpenseStatus.DECLINED,
            actor_id=admin_user.id,
            declined_reason="Missing receipt",
            comments="Ask for a copy",
        )
        assert sample_expense.declined_reason == "Missing receipt"
        assert sample_expense.comments == "Ask for a copy"

        entry = db.scalars(
            select(AuditLog).where(AuditLog.action == AuditAction.status_changed("declined"))
        ).one()
        assert entry.old_value == {"status": "submitted"}
        assert entry.new_value["declined_reason"] == "Missing receipt"
        assert entry.user_id == admin_user.id


class TestUpdateExpense:
    def test_returns_only_changed_fields(self, db, sample_expense, admin_user):
        changed = expense_service.update_expense(
            db,
            sample_expense,
            ExpenseUpdate(vendor_name=sample_expense.vendor_name, comments="Checked"),
            admin_user.id,
        )
        assert changed == {"comments": "Checked"}

    def test_merged_result_is_checked(self, db, sample_expense, admin_user):
        with pytest.raises(ValueError):
            expense_service.update_expense(
                db, sample_expense, ExpenseUpdate(account_holder=None), admin_user.id
            )
        assert sample_expense.account_holder == "Joan Puig"


class TestStats:
    def test_amounts_are_decimals(self, db, make_expense):
        make_expense(total_amount="1.10")
        make_expense(total_amount="2.20")
        stats = expense_service.get_expense_stats(db)
        assert stats["total_expenses"] == 2
        assert stats["total_amount"] == Decimal("3.30")
        assert stats["pending_amount"] == Decimal("3.30")


class TestAuditLogger:
    def test_safe_payload_serialises_common_types(self):
        some_id = uuid.uuid4()
        payload = audit._safe_payload(
            {"id": some_id, "day": date(2025, 1, 2), "amount": Decimal("1.50"), "n": 3}
        )
        assert payload == {"id": str(some_id), "day": "2025-01-02", "amount": "1.50", "n": 3}

    def test_log_event_never_raises(self, db, sample_expense):
        # object() is not JSON serialisable; the failure is logged and swallowed
        audit.log_event(db, sample_expense.id, "broken", new_value={"x": object()})
        actions = db.scalars(
            select(AuditLog.action).where(AuditLog.expense_id == sample_expense.id)
        ).all()
        assert actions == [AuditAction.CREATED]
