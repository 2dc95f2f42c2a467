"""Tests for schema document and result models.

Verifies camelCase parsing of the stored document, referential action
normalization, cascade helpers (``without_table``/``without_column``),
and result model helpers.
"""

import json

import pytest
from pydantic import ValidationError

from schema_sync.schema.models import (
    Column,
    ColumnDiff,
    OperationKind,
    ReferentialAction,
    Relationship,
    SchemaDocument,
    SchemaValidationResult,
    SyncOperation,
    SyncReport,
    Table,
)

DOCUMENT_JSON = {
    "tables": [
        {
            "id": "t-users",
            "name": "users",
            "position": {"x": 10, "y": 20},
            "columns": [
                {
                    "id": "c-id",
                    "name": "id",
                    "type": "INT",
                    "isPrimaryKey": True,
                    "isNullable": False,
                    "isUnique": False,
                    "isAutoIncrement": True,
                },
                {
                    "id": "c-email",
                    "name": "email",
                    "type": "VARCHAR(255)",
                    "isPrimaryKey": False,
                    "isNullable": False,
                    "isUnique": True,
                    "isAutoIncrement": False,
                    "defaultValue": None,
                },
            ],
        },
        {
            "id": "t-posts",
            "name": "blog posts",
            "columns": [
                {"id": "p-id", "name": "id", "type": "INT", "isPrimaryKey": True},
                {"id": "p-user", "name": "user_id", "type": "INT"},
            ],
        },
    ],
    "relationships": [
        {
            "id": "r1",
            "sourceTableId": "t-posts",
            "sourceColumnId": "p-user",
            "targetTableId": "t-users",
            "targetColumnId": "c-id",
            "onDelete": "CASCADE",
        }
    ],
}


class TestDocumentParsing:
    """Verify the camelCase wire format parses into snake_case models."""

    def test_from_dict(self) -> None:
        doc = SchemaDocument.from_json(DOCUMENT_JSON)
        assert len(doc.tables) == 2
        users = doc.tables[0]
        assert users.columns[0].is_primary_key is True
        assert users.columns[0].is_auto_increment is True
        assert users.columns[1].is_unique is True
        assert users.position.x == 10

    def test_from_json_text(self) -> None:
        doc = SchemaDocument.from_json(json.dumps(DOCUMENT_JSON))
        assert doc.relationships[0].source_column_id == "p-user"

    def test_snake_case_names_accepted(self) -> None:
        col = Column(id="c", name="n", type="INT", is_nullable=False)
        assert col.is_nullable is False

    def test_column_defaults(self) -> None:
        col = Column(id="c", name="n", type="TEXT")
        assert col.is_nullable is True
        assert col.is_primary_key is False
        assert col.default_value is None
        assert col.check_constraint is None

    def test_unknown_keys_ignored(self) -> None:
        table = Table.model_validate({"id": "t", "name": "x", "color": "#fff"})
        assert table.columns == []

    def test_missing_required_field_raises(self) -> None:
        with pytest.raises(ValidationError):
            Column.model_validate({"id": "c", "name": "n"})

    def test_table_names_sanitized_in_order(self) -> None:
        doc = SchemaDocument.from_json(DOCUMENT_JSON)
        assert doc.table_names() == ["users", "blog_posts"]

    def test_find_table_and_column(self) -> None:
        doc = SchemaDocument.from_json(DOCUMENT_JSON)
        posts = doc.find_table("t-posts")
        assert posts is not None
        assert posts.safe_name == "blog_posts"
        assert posts.find_column("p-user").name == "user_id"
        assert posts.find_column("missing") is None
        assert doc.find_table("missing") is None


class TestReferentialAction:
    """Verify onDelete/onUpdate normalization."""

    def _rel(self, **actions) -> Relationship:
        return Relationship(
            id="r",
            source_table_id="a",
            source_column_id="b",
            target_table_id="c",
            target_column_id="d",
            **actions,
        )

    def test_defaults_to_cascade(self) -> None:
        rel = self._rel()
        assert rel.on_delete == ReferentialAction.CASCADE
        assert rel.on_update == ReferentialAction.CASCADE

    def test_none_and_blank_become_cascade(self) -> None:
        rel = self._rel(on_delete=None, on_update="  ")
        assert rel.on_delete == ReferentialAction.CASCADE
        assert rel.on_update == ReferentialAction.CASCADE

    def test_lowercase_and_extra_spaces(self) -> None:
        rel = self._rel(on_delete="set  null", on_update="no action")
        assert rel.on_delete == ReferentialAction.SET_NULL
        assert rel.on_update == ReferentialAction.NO_ACTION

    def test_camel_case_alias(self) -> None:
        rel = Relationship.model_validate(
            {
                "id": "r",
                "sourceTableId": "a",
                "sourceColumnId": "b",
                "targetTableId": "c",
                "targetColumnId": "d",
                "onDelete": "restrict",
            }
        )
        assert rel.on_delete == ReferentialAction.RESTRICT

    def test_unknown_action_rejected(self) -> None:
        with pytest.raises(ValidationError):
            self._rel(on_delete="EXPLODE")


class TestCascadeHelpers:
    """Deleting a table or column removes relationships that reference it."""

    def test_without_table_removes_its_relationships(self) -> None:
        doc = SchemaDocument.from_json(DOCUMENT_JSON)
        trimmed = doc.without_table("t-users")
        assert [t.id for t in trimmed.tables] == ["t-posts"]
        assert trimmed.relationships == []

    def test_without_table_returns_a_copy(self) -> None:
        doc = SchemaDocument.from_json(DOCUMENT_JSON)
        doc.without_table("t-users")
        assert len(doc.tables) == 2
        assert len(doc.relationships) == 1

    def test_without_column_removes_referencing_relationship(self) -> None:
        doc = SchemaDocument.from_json(DOCUMENT_JSON)
        trimmed = doc.without_column("t-posts", "p-user")
        posts = trimmed.find_table("t-posts")
        assert [c.id for c in posts.columns] == ["p-id"]
        assert trimmed.relationships == []

    def test_without_unrelated_column_keeps_relationship(self) -> None:
        doc = SchemaDocument.from_json(DOCUMENT_JSON)
        trimmed = doc.without_column("t-users", "c-email")
        assert len(trimmed.relationships) == 1
        assert len(doc.find_table("t-users").columns) == 2


class TestResultModels:
    """Verify report helpers."""

    def test_sync_report_counts(self) -> None:
        report = SyncReport(
            success=False,
            message="m",
            operations=[
                SyncOperation(kind=OperationKind.CREATE, target="a"),
                SyncOperation(kind=OperationKind.CREATE, target="b", success=False, error="x"),
            ],
            skipped_relationships=["r9"],
        )
        assert report.failed_count == 1
        assert report.failures[0].target == "b"
        assert report.skipped_count == 1

    def test_to_response_shape(self) -> None:
        report = SyncReport(success=True, message="Synced 1 tables to MySQL", details=["x"])
        assert report.to_response() == {
            "success": True,
            "message": "Synced 1 tables to MySQL",
            "details": ["x"],
        }

    def test_validation_report_drift(self) -> None:
        result = SchemaValidationResult(
            valid=False,
            missing_tables=["posts"],
            missing_columns=[ColumnDiff(table="users", column="email")],
        )
        report = result.format_report()
        assert report.startswith("Schema drift detected:")
        assert "- posts" in report
        assert "- users.email" in report
        assert result.error_count == 2

    def test_validation_report_extra_tables_only(self) -> None:
        result = SchemaValidationResult(valid=True, extra_tables=["legacy"])
        report = result.format_report()
        assert report.startswith("Schema matches document")
        assert "Extra tables: legacy" in report
