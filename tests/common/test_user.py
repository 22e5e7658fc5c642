"""Tests for role resolution from the role mapping."""

import pytest

from hulugan.common import Role


class TestRole:
    """Test suite for Role."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("admin", Role.ADMIN),
            ("viewer", Role.VIEWER),
            (None, Role.VIEWER),
            ("", Role.VIEWER),
            ("owner", Role.VIEWER),
            ("ADMIN", Role.VIEWER),
        ],
    )
    def test_from_mapping(self, value: str | None, expected: Role) -> None:
        assert Role.from_mapping(value) is expected
