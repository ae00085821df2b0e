"""
Tests for the role gate.
"""
import pytest

from core.auth import MUTATING_OPERATIONS, Operation, authorize, is_admin


@pytest.mark.parametrize("role", ["admin", "Admin", "ADMIN", "aDmIn"])
def test_admin_in_any_case(role):
    assert is_admin(role) is True


@pytest.mark.parametrize("role", [None, "", "user", "administrator", " admin", "guest"])
def test_non_admin_roles(role):
    assert is_admin(role) is False


@pytest.mark.parametrize("operation", sorted(MUTATING_OPERATIONS, key=lambda op: op.value))
def test_mutations_require_admin(operation):
    assert authorize("Admin", operation) is True
    assert authorize("user", operation) is False
    assert authorize(None, operation) is False


@pytest.mark.parametrize("operation", [
    op for op in Operation if op not in MUTATING_OPERATIONS
])
def test_reads_are_never_gated(operation):
    assert authorize(None, operation) is True
    assert authorize("user", operation) is True


def test_every_create_update_delete_is_mutating():
    for operation in Operation:
        verb = operation.value.split(".")[1]
        if verb.startswith(("create", "update", "delete")):
            assert operation in MUTATING_OPERATIONS
