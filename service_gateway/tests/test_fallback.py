"""
Unit tests for offline fallback answers.
"""

import pytest

from service_gateway.app.domain.fallback import (
    GENERIC_STUDY_TIP,
    TOPIC_TABLE,
    chat_fallback,
    course_fallback,
    fallback,
    profile_fallback,
    resume_fallback,
)

ARRAYS, TREES, GRAPHS, DP, COMPLEXITY = (answer for _, answer in TOPIC_TABLE)


class TestFallback:
    """Test cases for the keyword fallback classifier."""

    @pytest.mark.parametrize("query, expected", [
        ("best sorting algorithm for arrays", ARRAYS),
        ("How do I invert a BINARY tree?", TREES),
        ("explain DFS on a graph", GRAPHS),
        ("when should I use bfs", GRAPHS),
        ("intro to dynamic programming", DP),
        ("what is the time complexity of heapsort", COMPLEXITY),
        ("asdkjh", GENERIC_STUDY_TIP),
        ("", GENERIC_STUDY_TIP),
    ])
    def test_classification(self, query, expected):
        """Queries map to their topic entry or the generic tip."""
        assert fallback(query) == expected

    def test_first_match_wins(self):
        """Table order decides between several matching topics."""
        assert fallback("sorting a binary tree in a graph") == ARRAYS
        assert fallback("tree dp on a graph") == TREES

    def test_deterministic(self):
        """Same input, same output."""
        assert fallback("explain DFS on a graph") == fallback("explain DFS on a graph")

    @pytest.mark.parametrize("value", [None, 42, {"message": "array"}, ["tree"]])
    def test_total_on_non_text(self, value):
        """Non-string input still yields the generic tip."""
        assert fallback(value) == GENERIC_STUDY_TIP

    def test_chat_fallback_shape(self):
        """Chat fallback keeps the {response} shape."""
        assert chat_fallback({"message": "graph"}) == {"response": GRAPHS}
        assert chat_fallback({}) == {"response": GENERIC_STUDY_TIP}

    @pytest.mark.parametrize("builder, field", [
        (course_fallback, "courseId"),
        (resume_fallback, "analysis"),
        (profile_fallback, "profile"),
    ])
    def test_unavailable_bodies(self, builder, field):
        """Non-chat operations answer with an explicit unavailable status."""
        body = builder({})

        assert body[field] is None
        assert body["status"] == "unavailable"
        assert body["message"]
