"""Unit tests for JSON span extraction and the ingredient text heuristic."""

import json

from recipe_recommender.services.extraction import (
    extract_array,
    extract_ingredients_from_text,
    extract_object,
)


class TestExtractArray:
    """Test locating a JSON array inside prose."""

    def test_array_of_objects_with_surrounding_prose(self):
        """Prose before and after the array should be cut away."""
        text = 'Here are your recipes:\n[{"title": "Soup"}, {"title": "Salad"}]\nEnjoy!'
        span = extract_array(text)
        assert span == '[{"title": "Soup"}, {"title": "Salad"}]'
        assert len(json.loads(span)) == 2

    def test_string_array(self):
        """A plain string array is a valid span."""
        assert extract_array('["Tomato", "Basil"]') == '["Tomato", "Basil"]'

    def test_span_is_exact_substring(self):
        """The returned span should appear verbatim in the input."""
        text = 'x [ {"a": 1} ] y'
        span = extract_array(text)
        assert span is not None
        assert span in text

    def test_greedy_to_last_closer(self):
        """Matching runs from the first opener to the last closer."""
        text = '["a"] and then ["b"]'
        assert extract_array(text) == '["a"] and then ["b"]'

    def test_no_array(self):
        """Text without brackets yields None."""
        assert extract_array("No JSON here") is None

    def test_numeric_array_not_matched(self):
        """Arrays whose first element is neither object nor string are ignored."""
        assert extract_array("[1, 2, 3]") is None

    def test_empty_and_none_input(self):
        """Empty input yields None instead of raising."""
        assert extract_array("") is None
        assert extract_array(None) is None


class TestExtractObject:
    """Test locating a JSON object inside prose."""

    def test_object_with_prose(self):
        """The outermost braces should be returned."""
        text = 'Sure! {"title": "Soup", "nutritionFacts": {"calories": 100}} Thanks'
        span = extract_object(text)
        assert json.loads(span)["nutritionFacts"]["calories"] == 100

    def test_no_object(self):
        """Text without braces yields None."""
        assert extract_object("[1, 2]") is None


class TestExtractIngredientsFromText:
    """Test the non-JSON ingredient heuristic."""

    def test_comma_and_period_separated(self):
        """Commas and periods split fragments."""
        assert extract_ingredients_from_text("Tomato, Basil.") == ["Tomato", "Basil"]

    def test_newline_separated(self):
        """Newlines split fragments and whitespace is trimmed."""
        assert extract_ingredients_from_text("  Tomato\n Basil \nGarlic") == ["Tomato", "Basil", "Garlic"]

    def test_short_fragments_dropped(self):
        """Fragments of two characters or fewer are discarded."""
        assert extract_ingredients_from_text("ok, Egg, a, Rice") == ["Egg", "Rice"]

    def test_duplicates_removed_in_first_seen_order(self):
        """Exact duplicates collapse to the first occurrence."""
        assert extract_ingredients_from_text("Basil, Tomato, Basil") == ["Basil", "Tomato"]

    def test_brackets_and_quotes_are_separators(self):
        """A broken JSON array still yields its names."""
        assert extract_ingredients_from_text('["Tomato", "Basil"') == ["Tomato", "Basil"]

    def test_nothing_usable(self):
        """Empty input yields an empty list."""
        assert extract_ingredients_from_text("") == []
        assert extract_ingredients_from_text(", . ,") == []
