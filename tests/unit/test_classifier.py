"""Unit tests for the keyword classifier."""

from datetime import date

import pytest

from ledgerbot.constants import AMOUNT_HINT, MAX_AMOUNT
from ledgerbot.exceptions import ClassificationError, InvalidAmountError, NoAmountFoundError
from ledgerbot.models import PaymentMode, TransactionType
from ledgerbot.parsing.classifier import (
    CATEGORY_PRIORITY,
    FAMILY_CATEGORIES,
    classify,
    detect_category,
    detect_type,
)

TODAY = date(2026, 10, 19)


class TestAmount:
    """Amount extraction."""

    @pytest.mark.parametrize("text", ["groceries", "paid for lunch", "", "three hundred bus"])
    def test_no_digits_raises_no_amount_found(self, text):
        with pytest.raises(NoAmountFoundError) as exc_info:
            classify(text, today=TODAY)
        assert str(exc_info.value) == AMOUNT_HINT

    def test_digits_glued_to_letters_are_not_an_amount(self):
        with pytest.raises(NoAmountFoundError):
            classify("rs500 groceries", today=TODAY)

    def test_first_integer_wins(self):
        entry = classify("200 lunch and 300 dinner", today=TODAY)
        assert entry.amount == 200

    def test_zero_amount_is_rejected(self):
        with pytest.raises(InvalidAmountError):
            classify("0 groceries", today=TODAY)

    def test_largest_storable_amount_is_accepted(self):
        assert classify(f"{MAX_AMOUNT} rent", today=TODAY).amount == MAX_AMOUNT

    @pytest.mark.parametrize("amount", [MAX_AMOUNT + 1, 3_000_000_000, 99999999999999999999])
    def test_amount_too_large_is_rejected(self, amount):
        with pytest.raises(InvalidAmountError, match="too large"):
            classify(f"{amount} groceries", today=TODAY)

    def test_classification_errors_share_a_base(self):
        assert issubclass(NoAmountFoundError, ClassificationError)
        assert issubclass(InvalidAmountError, ClassificationError)


class TestDocumentedExamples:
    """The canonical examples shown in the bot's help text."""

    def test_plain_groceries_expense(self):
        entry = classify("500 groceries", today=TODAY)
        assert entry.type is TransactionType.EXPENSE
        assert entry.amount == 500
        assert entry.category == "groceries"
        assert entry.is_family is True
        assert entry.reason == "groceries"
        assert entry.date == TODAY
        assert entry.payment_mode is PaymentMode.UPI

    def test_salary_income(self):
        entry = classify("received salary 30000", today=TODAY)
        assert entry.type is TransactionType.INCOME
        assert entry.amount == 30000
        assert entry.category == "salary"
        assert entry.is_family is False
        assert entry.reason == "received salary"

    def test_gift_from_grandfather(self):
        entry = classify("grandfather gave 1000", today=TODAY)
        assert entry.type is TransactionType.INCOME
        assert entry.amount == 1000
        assert entry.category == "income"
        assert entry.is_family is True

    def test_paid_medical(self):
        entry = classify("paid 200 medical", today=TODAY)
        assert entry.type is TransactionType.EXPENSE
        assert entry.category == "medical"
        assert entry.is_family is True


class TestType:
    """Income vs expense decision."""

    def test_expense_signal_wins_ties(self):
        assert detect_type("received 500 but paid 200") is TransactionType.EXPENSE

    def test_no_signal_is_expense(self):
        assert detect_type("500 groceries") is TransactionType.EXPENSE

    @pytest.mark.parametrize("text", ["salary 100", "got 50", "credited 900", "freelance 10"])
    def test_income_signals(self, text):
        assert detect_type(text) is TransactionType.INCOME


class TestCategory:
    """Category selection."""

    def test_priority_order_is_declared(self):
        assert [name for name, _ in CATEGORY_PRIORITY] == [
            "groceries",
            "bills",
            "medical",
            "travel",
            "food",
            "shopping",
        ]

    def test_groceries_beats_food(self):
        assert classify("120 milk and lunch", today=TODAY).category == "groceries"

    def test_food_beats_shopping(self):
        assert classify("300 lunch from amazon", today=TODAY).category == "food"

    def test_unmatched_expense_is_general(self):
        entry = classify("450 haircut", today=TODAY)
        assert entry.category == "general"
        assert entry.is_family is False

    def test_income_uses_first_income_keyword(self):
        assert detect_category("got refund 450 on salary day", TransactionType.INCOME) == "salary"
        assert classify("got refund 450", today=TODAY).category == "refund"

    def test_income_never_uses_expense_groups(self):
        entry = classify("credited 800 for groceries", today=TODAY)
        assert entry.type is TransactionType.INCOME
        assert entry.category == "income"
        assert entry.is_family is False


class TestFamily:
    """Family flag inference."""

    def test_relationship_keyword(self):
        entry = classify("150 dinner with dad", today=TODAY)
        assert entry.category == "food"
        assert entry.is_family is True

    @pytest.mark.parametrize("category", sorted(FAMILY_CATEGORIES))
    def test_family_categories(self, category):
        keyword = dict(CATEGORY_PRIORITY)[category][0]
        assert classify(f"100 {keyword}", today=TODAY).is_family is True

    def test_travel_is_not_family(self):
        assert classify("150 uber", today=TODAY).is_family is False


class TestReasonDateAndMode:
    """Reason text, explicit dates and payment mode."""

    def test_reason_keeps_original_case(self):
        assert classify("Spent 500 on Groceries", today=TODAY).reason == "Spent  on Groceries"

    def test_bare_amount_has_no_reason(self):
        assert classify("  500  ", today=TODAY).reason is None

    def test_explicit_date_is_used(self):
        entry = classify("250 lunch on 3rd feb", today=TODAY)
        assert entry.amount == 250
        assert entry.date == date(2026, 2, 3)

    def test_invalid_explicit_date_falls_back_to_today(self):
        assert classify("250 lunch on 30 feb", today=TODAY).date == TODAY

    def test_cash_word_sets_payment_mode(self):
        assert classify("200 cash for milk", today=TODAY).payment_mode is PaymentMode.CASH

    def test_cashback_is_not_cash(self):
        assert classify("20 cashback shopping", today=TODAY).payment_mode is PaymentMode.UPI


class TestPurity:
    """Classification has no hidden state."""

    def test_same_input_same_output(self):
        assert classify("paid 200 medical", today=TODAY) == classify(
            "paid 200 medical", today=TODAY
        )
