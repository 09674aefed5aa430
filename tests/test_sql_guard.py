"""Unit tests for the statement validator."""

from __future__ import annotations

import pytest

from sql_agent.security.sql_guard import OPERATIONS, ValidationOutcome, validate_statement


class TestOperationConsistency:
    """The statement must start with the operation it declares."""

    def test_matching_operation_is_valid(self):
        outcome = validate_statement("SELECT * FROM User WHERE id = ?", "SELECT")
        assert outcome == ValidationOutcome(valid=True, reason=None)

    def test_case_and_whitespace_are_ignored(self):
        """Leading whitespace and lowercase text/operation still match."""
        assert validate_statement("   select id from User", "select").valid
        assert validate_statement("\n\tInsert INTO User (email) VALUES (?)", "INSERT").valid

    @pytest.mark.parametrize(
        "text, operation",
        [
            ("UPDATE User SET email = ? WHERE id = ?", "SELECT"),
            ("SELECT * FROM User", "DELETE"),
            ("DELETE FROM User WHERE id = ?", "INSERT"),
            ("INSERT INTO User (email) VALUES (?)", "UPDATE"),
        ],
    )
    def test_mismatched_operation_is_rejected(self, text, operation):
        outcome = validate_statement(text, operation)
        assert not outcome.valid
        assert "operation mismatch" in outcome.reason.lower()

    def test_keyword_must_be_a_whole_word(self):
        """SELECTED is not SELECT."""
        outcome = validate_statement("SELECTED_ROWS FROM x", "SELECT")
        assert not outcome.valid
        assert "operation mismatch" in outcome.reason.lower()

    def test_empty_operation_never_matches(self):
        assert not validate_statement("SELECT 1", "").valid

    def test_all_supported_operations_listed(self):
        assert OPERATIONS == ("SELECT", "INSERT", "UPDATE", "DELETE")


class TestDenyList:
    """Dangerous shapes are rejected whatever the declared operation."""

    @pytest.mark.parametrize(
        "text",
        [
            "SELECT 1; DROP TABLE User",
            "SELECT 1; drop   database app",
            "SELECT * FROM User; TRUNCATE User",
            "SELECT 1; ALTER TABLE User ADD COLUMN x INT",
            "SELECT 1; create table t (id int)",
        ],
    )
    def test_schema_destructive_statements(self, text):
        outcome = validate_statement(text, "SELECT")
        assert not outcome.valid
        assert "dangerous" in outcome.reason.lower()

    def test_destructive_statement_with_matching_label_is_rejected(self):
        outcome = validate_statement("DROP TABLE User", "DROP")
        assert not outcome.valid
        assert "DROP TABLE" in outcome.reason

    @pytest.mark.parametrize(
        "text, operation",
        [
            ("DELETE FROM User WHERE 1=1", "DELETE"),
            ("delete from User where 1 = 1", "DELETE"),
            ("DELETE FROM User\nWHERE 1=1", "DELETE"),
            ("UPDATE User SET password = ? WHERE 1=1", "UPDATE"),
            ("update User set password = ? where 1 = 1", "UPDATE"),
        ],
    )
    def test_unconditional_mass_mutation(self, text, operation):
        outcome = validate_statement(text, operation)
        assert not outcome.valid
        assert "dangerous" in outcome.reason.lower()

    @pytest.mark.parametrize(
        "where",
        ["WHERE 2=2", "WHERE (1=1)", "WHERE 'a'='a'", "WHERE TRUE"],
    )
    def test_equivalent_tautologies(self, where):
        assert not validate_statement(f"DELETE FROM User {where}", "DELETE").valid
        assert not validate_statement(f"UPDATE User SET email = ? {where}", "UPDATE").valid

    @pytest.mark.parametrize(
        "text, operation",
        [
            ("DELETE FROM User WHERE id = ?", "DELETE"),
            ("DELETE FROM User WHERE id = 1", "DELETE"),
            ("UPDATE User SET email = ? WHERE id = 12", "UPDATE"),
            ("DELETE FROM User WHERE 1=10", "DELETE"),
        ],
    )
    def test_conditional_mutation_is_allowed(self, text, operation):
        assert validate_statement(text, operation).valid

    def test_disguised_tautology_is_not_caught(self):
        """Documented limitation of a textual deny-list."""
        assert validate_statement("DELETE FROM User WHERE 1=2 OR 1=1", "DELETE").valid
        assert validate_statement("DELETE FROM User WHERE id IS NOT NULL", "DELETE").valid


class TestStatementCount:
    def test_trailing_semicolon_is_one_statement(self):
        assert validate_statement("SELECT * FROM User;", "SELECT").valid

    def test_chained_statements_are_rejected(self):
        outcome = validate_statement("SELECT * FROM User; DELETE FROM User WHERE id = 1", "SELECT")
        assert not outcome.valid
        assert "multiple statements" in outcome.reason.lower()

    def test_semicolon_inside_literal_is_fine(self):
        assert validate_statement("SELECT * FROM User WHERE email = 'a;b'", "SELECT").valid


class TestPassThrough:
    def test_text_is_not_modified(self):
        """Validation is pure; it returns a verdict only."""
        text = "  SELECT * FROM User WHERE email = ?  "
        outcome = validate_statement(text, "SELECT")
        assert outcome.valid
        assert text == "  SELECT * FROM User WHERE email = ?  "
