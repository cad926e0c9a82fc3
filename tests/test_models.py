"""
tests/test_models.py
Unit tests for the Pydantic definition models in relcheck.models.
"""

from __future__ import annotations

import copy
from typing import Any, Dict

import pytest
from pydantic import ValidationError

from conftest import entity, primary_key, prop
from relcheck.models import (
    DatabaseDialect,
    EntityTypeDefinition,
    ForeignKeyDefinition,
    KeyDefinition,
    ModelDefinition,
    PropertyDefinition,
    ValidationConfig,
    ValueGenerated,
)


class TestPropertyDefinition:
    def test_defaults(self) -> None:
        p = PropertyDefinition(name="Id", value_type="int")
        assert p.column_name is None
        assert p.nullable is None
        assert p.concurrency_token is False
        assert p.value_generated == ValueGenerated.NEVER
        assert p.generates_on_update is False

    @pytest.mark.parametrize(
        "mode, expected",
        [("on_add", False), ("on_update", True), ("on_add_or_update", True)],
    )
    def test_generates_on_update(self, mode: str, expected: bool) -> None:
        p = PropertyDefinition(name="Version", value_type="bytes", value_generated=mode)
        assert p.generates_on_update is expected

    def test_unknown_generation_mode_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PropertyDefinition(name="Version", value_type="bytes", value_generated="sometimes")

    def test_extra_fields_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PropertyDefinition(name="Id", value_type="int", primary_key=True)

    def test_empty_name_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PropertyDefinition(name="", value_type="int")


class TestKeyAndForeignKeyDefinitions:
    def test_duplicate_key_properties_rejected(self) -> None:
        with pytest.raises(ValidationError, match="Duplicate key properties"):
            KeyDefinition(properties=["Id", "Id"], primary=True)

    def test_empty_key_rejected(self) -> None:
        with pytest.raises(ValidationError):
            KeyDefinition(properties=[])

    def test_principal_key_arity(self) -> None:
        with pytest.raises(ValidationError, match="principal key"):
            ForeignKeyDefinition(
                properties=["OrderId"], principal_entity="Order", principal_key=["A", "B"]
            )

    def test_on_delete_stored_as_value(self) -> None:
        fk = ForeignKeyDefinition(properties=["OrderId"], principal_entity="Order", on_delete="SET NULL")
        assert fk.on_delete == "SET NULL"

    def test_unknown_on_delete_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ForeignKeyDefinition(properties=["OrderId"], principal_entity="Order", on_delete="DROP")


class TestEntityTypeDefinition:
    def test_schema_alias(self) -> None:
        by_alias = EntityTypeDefinition.model_validate({"name": "Order", "schema": "sales"})
        by_name = EntityTypeDefinition(name="Order", schema_name="sales")
        assert by_alias.schema_name == by_name.schema_name == "sales"

    def test_duplicate_property_names_rejected(self) -> None:
        with pytest.raises(ValidationError, match="Duplicate property names"):
            EntityTypeDefinition.model_validate(entity("Order", [prop("Id"), prop("Id", "str")]))

    def test_two_primary_keys_rejected(self) -> None:
        with pytest.raises(ValidationError, match="2 primary keys"):
            EntityTypeDefinition.model_validate(
                entity("Order", [prop("Id"), prop("Code")], keys=[primary_key("Id"), primary_key("Code")])
            )

    def test_scalar_discriminator_values_preserved(self) -> None:
        for value in ("1", 1, 1.5, True):
            definition = EntityTypeDefinition.model_validate(
                entity("A", [prop("Id")], discriminator_value=value)
            )
            assert definition.discriminator_value == value
            assert type(definition.discriminator_value) is type(value)

    @pytest.mark.parametrize("value", [["a"], {"a": 1}])
    def test_unhashable_discriminator_value_rejected(self, value: Any) -> None:
        with pytest.raises(ValidationError):
            EntityTypeDefinition.model_validate(
                entity("A", [prop("Id")], discriminator_value=value)
            )


class TestModelDefinition:
    """Tests for model-wide reference checks."""

    def test_reference_model_parses(self, example_model_dict: Dict[str, Any]) -> None:
        definition = ModelDefinition.model_validate(example_model_dict)
        assert definition.entity_count == 8
        assert definition.get_entity_type("Cat").base_type == "Pet"
        assert definition.get_entity_type("Nope") is None
        assert definition.functions[0].function_name == "calculate_discount"

    def test_duplicate_entity_names(self) -> None:
        with pytest.raises(ValidationError, match="Duplicate entity type names"):
            ModelDefinition.model_validate(
                {"entity_types": [entity("A", [prop("Id")]), entity("A", [prop("Id")])]}
            )

    @pytest.mark.parametrize(
        "options, message",
        [
            ({"base_type": "Ghost"}, "derives from unknown"),
            ({"owner": "Ghost"}, "owned by unknown"),
            (
                {"foreign_keys": [{"properties": ["Id"], "principal_entity": "Ghost"}]},
                "not defined in the model",
            ),
        ],
    )
    def test_unknown_references(self, options: Dict[str, Any], message: str) -> None:
        with pytest.raises(ValidationError, match=message):
            ModelDefinition.model_validate({"entity_types": [entity("A", [prop("Id")], **options)]})

    @pytest.mark.parametrize("relation", ["base_type", "owner"])
    def test_cycles_rejected(self, relation: str) -> None:
        with pytest.raises(ValidationError, match="Circular"):
            ModelDefinition.model_validate(
                {
                    "entity_types": [
                        entity("A", [prop("Id")], **{relation: "B"}),
                        entity("B", [prop("Id")], **{relation: "A"}),
                    ]
                }
            )

    def test_mixed_inheritance_ownership_cycle_rejected(self) -> None:
        with pytest.raises(ValidationError, match="Circular inheritance/ownership"):
            ModelDefinition.model_validate(
                {
                    "entity_types": [
                        entity("A", [prop("Id")], base_type="B"),
                        entity("B", [prop("Id")], owner="A"),
                    ]
                }
            )

    def test_definition_errors_are_value_errors(self, example_model_dict: Dict[str, Any]) -> None:
        data = copy.deepcopy(example_model_dict)
        data["entity_types"][0]["base_type"] = "Cat"
        with pytest.raises(ValueError):
            ModelDefinition.model_validate(data)


class TestValidationConfig:
    def test_defaults(self) -> None:
        config = ValidationConfig()
        assert config.dialect == DatabaseDialect.POSTGRESQL.value
        assert f"{config.dialect}" == "postgresql"
        assert config.warnings_as_errors is False
        assert config.validate_functions is True

    def test_unknown_dialect_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ValidationConfig(dialect="db2")
