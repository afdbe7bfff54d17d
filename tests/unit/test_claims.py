"""Tests for extraction of the numbers an answer claims."""

from storeagent.validation.claims import extract_claimed_numbers, find_numbers


class TestFindNumbers:
    """Tests for find_numbers."""

    def test_plain_and_separated_numbers(self) -> None:
        assert find_numbers("42 orders worth 1,234.50 in total") == [42.0, 1234.5]

    def test_dates_and_ids_ignored(self) -> None:
        """Dates, times and dashed identifiers are not numbers."""
        assert find_numbers("Since 2024-01-05 at 10:30, order_12 and v1.2") == []

    def test_negative_numbers(self) -> None:
        assert find_numbers("stock is -3 units") == [-3.0]


class TestExtractClaimedNumbers:
    """Tests for extract_claimed_numbers."""

    def test_number_before_label(self) -> None:
        claims = extract_claimed_numbers("There were 42 orders in the last 7 days.", {"count": 42})
        assert claims == {"count": 42.0}

    def test_label_before_number(self) -> None:
        claims = extract_claimed_numbers(
            "The available quantity is 5 units.", {"available_quantity": 5}
        )
        assert claims == {"available_quantity": 5.0}

    def test_divergent_claim_is_reported(self) -> None:
        """A wrong labelled number is returned as the claim."""
        claims = extract_claimed_numbers("You received 40 orders this week.", {"count": 42})
        assert claims == {"count": 40.0}

    def test_grounded_value_mentioned_without_label(self) -> None:
        claims = extract_claimed_numbers("The result is 42.", {"total": 42})
        assert claims == {"total": 42.0}

    def test_unmentioned_label_has_no_claim(self) -> None:
        claims = extract_claimed_numbers("Sales look healthy this week.", {"count": 42})
        assert claims == {}

    def test_adjectives_between_number_and_label(self) -> None:
        claims = extract_claimed_numbers("We shipped 17 completed orders.", {"orders": 17})
        assert claims == {"orders": 17.0}

    def test_thousands_separator(self) -> None:
        claims = extract_claimed_numbers("Total: 1,250", {"total": 1250})
        assert claims == {"total": 1250.0}

    def test_empty_answer(self) -> None:
        assert extract_claimed_numbers("", {"count": 1}) == {}

    def test_time_span_before_label_is_not_a_claim(self) -> None:
        """The number after the label wins over a preceding time span."""
        claims = extract_claimed_numbers("In the last 7 days orders totaled 42.", {"count": 42})
        assert claims == {"count": 42.0}

    def test_ranking_is_not_a_claim(self) -> None:
        claims = extract_claimed_numbers("Here are the top 5 orders by value.", {"count": 12})
        assert claims == {}

    def test_unit_word_between_number_and_label(self) -> None:
        claims = extract_claimed_numbers("Over 3 weeks orders grew steadily.", {"orders": 30})
        assert claims == {}
