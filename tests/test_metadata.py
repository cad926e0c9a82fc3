"""
tests/test_metadata.py
Unit tests for relcheck.metadata (the read-only model accessor).

Tests cover:
- Table and schema resolution
- Default key, foreign key and index names
- Column nullability
- Hierarchy and ownership navigation
- Reference resolution errors
"""

from __future__ import annotations

from typing import Any, Dict

import pytest

from conftest import build_model, entity, primary_key, prop
from relcheck.metadata import (
    DbFunction,
    RelationalModel,
    TableIdentifier,
    is_in_ownership_path,
)
from relcheck.models import DbFunctionDefinition


# ===========================================================================
# Table resolution
# ===========================================================================


class TestTableResolution:
    """Tests for the table each entity type maps onto."""

    def test_explicit_table_with_default_schema(self) -> None:
        model = build_model(
            {"default_schema": "shop", "entity_types": [entity("Order", [prop("Id")], table="Orders")]}
        )
        order = model.get_entity_type("Order")
        assert order.table == TableIdentifier("Orders", "shop")
        assert order.has_explicit_table

    def test_entity_schema_wins_over_default(self) -> None:
        model = build_model(
            {
                "default_schema": "shop",
                "entity_types": [entity("Order", [prop("Id")], table="Orders", schema="sales")],
            }
        )
        assert model.get_entity_type("Order").table == TableIdentifier("Orders", "sales")

    def test_empty_schema_means_no_schema(self) -> None:
        model = build_model(
            {"default_schema": "", "entity_types": [entity("Order", [prop("Id")], table="Orders")]}
        )
        assert model.get_entity_type("Order").table.schema is None
        assert model.default_schema is None

    def test_table_defaults_to_entity_name(self) -> None:
        model = build_model({"entity_types": [entity("Order", [prop("Id")])]})
        order = model.get_entity_type("Order")
        assert order.table == TableIdentifier("Order")
        assert not order.has_explicit_table

    def test_derived_type_uses_base_table(self) -> None:
        # derived declared before its base
        model = build_model(
            {
                "default_schema": "zoo",
                "entity_types": [
                    entity("Cat", [prop("Lives")], keys=[], base_type="Animal"),
                    entity("Animal", [prop("Id")], table="Animals"),
                ],
            }
        )
        assert model.get_entity_type("Cat").table == TableIdentifier("Animals", "zoo")

    def test_owned_type_uses_owner_table(self) -> None:
        model = build_model(
            {
                "entity_types": [
                    entity("Customer", [prop("Id")], table="Customers", schema="crm"),
                    entity("Address", [prop("Id")], owner="Customer"),
                ]
            }
        )
        assert model.get_entity_type("Address").table == TableIdentifier("Customers", "crm")

    def test_table_follows_mixed_base_and_owner_chain(self) -> None:
        model = build_model(
            {
                "entity_types": [
                    entity("HomeAddress", [prop("Street", "str")], keys=[], base_type="Address"),
                    entity("Address", [prop("Id")], owner="Customer"),
                    entity("Customer", [prop("Id")], table="Customers", schema="crm"),
                ]
            }
        )
        assert model.get_entity_type("HomeAddress").table == TableIdentifier("Customers", "crm")

    def test_table_identifier_str(self) -> None:
        assert str(TableIdentifier("Orders", "shop")) == "shop.Orders"
        assert str(TableIdentifier("Orders")) == "Orders"


# ===========================================================================
# Default names
# ===========================================================================


class TestDefaultNames:
    """Tests for constraint and index names derived from table and columns."""

    @pytest.fixture()
    def model(self) -> RelationalModel:
        return build_model(
            {
                "entity_types": [
                    entity(
                        "Order",
                        [prop("Id"), prop("Number", "str", nullable=False)],
                        keys=[primary_key("Id"), {"properties": ["Number"]}],
                        table="Orders",
                    ),
                    entity(
                        "OrderLine",
                        [prop("Id"), prop("OrderId", column_name="order_id")],
                        table="OrderLines",
                        foreign_keys=[{"properties": ["OrderId"], "principal_entity": "Order"}],
                        indexes=[
                            {"properties": ["OrderId"]},
                            {"properties": ["Id", "OrderId"], "name": "IX_Custom"},
                        ],
                    ),
                ]
            }
        )

    def test_primary_key_name(self, model: RelationalModel) -> None:
        assert model.get_entity_type("Order").keys[0].name == "PK_Orders"

    def test_alternate_key_name(self, model: RelationalModel) -> None:
        assert model.get_entity_type("Order").keys[1].name == "AK_Orders_Number"

    def test_foreign_key_name(self, model: RelationalModel) -> None:
        fk = model.get_entity_type("OrderLine").foreign_keys[0]
        assert fk.name == "FK_OrderLines_Orders_order_id"
        assert fk.principal_key.name == "PK_Orders"
        assert fk.is_identifying
        assert fk.on_delete == "NO ACTION"

    def test_index_names(self, model: RelationalModel) -> None:
        indexes = model.get_entity_type("OrderLine").indexes
        assert indexes[0].name == "IX_OrderLines_order_id"
        assert indexes[1].name == "IX_Custom"

    def test_explicit_key_name(self) -> None:
        model = build_model(
            {"entity_types": [entity("Order", [prop("Id")], keys=[primary_key("Id", name="PK_Custom")])]}
        )
        assert model.get_entity_type("Order").find_primary_key().name == "PK_Custom"


# ===========================================================================
# Nullability
# ===========================================================================


class TestColumnNullability:
    """Tests for Property.is_column_nullable."""

    @pytest.mark.parametrize(
        "definition, expected",
        [
            (prop("Value", "int"), False),
            (prop("Value", "int?"), True),
            (prop("Value", "str"), True),
            (prop("Value", "bytes"), True),
            (prop("Value", "str", nullable=False), False),
            (prop("Value", "int", nullable=True), True),
        ],
    )
    def test_nullability(self, definition: Dict[str, Any], expected: bool) -> None:
        model = build_model({"entity_types": [entity("Thing", [prop("Id"), definition])]})
        assert model.get_entity_type("Thing").find_property("Value").is_column_nullable is expected

    def test_primary_key_columns_are_not_nullable(self) -> None:
        model = build_model(
            {"entity_types": [entity("Thing", [prop("Code", "str")], keys=[primary_key("Code")])]}
        )
        assert model.get_entity_type("Thing").find_property("Code").is_column_nullable is False

    def test_clr_value_type_strips_marker(self) -> None:
        model = build_model({"entity_types": [entity("Thing", [prop("Id"), prop("Value", "int?")])]})
        assert model.get_entity_type("Thing").find_property("Value").clr_value_type == "int"


# ===========================================================================
# Hierarchy & ownership
# ===========================================================================


class TestHierarchy:
    """Tests for inheritance navigation."""

    @pytest.fixture()
    def model(self) -> RelationalModel:
        return build_model(
            {
                "entity_types": [
                    entity(
                        "Animal",
                        [prop("Id"), prop("Kind", "str")],
                        table="Animals",
                        discriminator_property="Kind",
                    ),
                    entity("Pet", [prop("OwnerName", "str")], keys=[], base_type="Animal"),
                    entity("Cat", [prop("Lives")], keys=[], base_type="Pet"),
                    entity("Bird", [prop("Wingspan", "float")], keys=[], base_type="Animal"),
                ]
            }
        )

    def test_derived_types_breadth_first(self, model: RelationalModel) -> None:
        animal = model.get_entity_type("Animal")
        assert [e.name for e in animal.get_derived_types_inclusive()] == [
            "Animal",
            "Pet",
            "Bird",
            "Cat",
        ]

    def test_base_types_nearest_first(self, model: RelationalModel) -> None:
        cat = model.get_entity_type("Cat")
        assert [e.name for e in cat.base_types()] == ["Pet", "Animal"]
        assert cat.root_type() is model.get_entity_type("Animal")

    def test_is_assignable_from(self, model: RelationalModel) -> None:
        animal = model.get_entity_type("Animal")
        pet = model.get_entity_type("Pet")
        cat = model.get_entity_type("Cat")
        bird = model.get_entity_type("Bird")
        assert animal.is_assignable_from(cat)
        assert pet.is_assignable_from(pet)
        assert not pet.is_assignable_from(bird)
        assert not cat.is_assignable_from(animal)

    def test_inherited_members(self, model: RelationalModel) -> None:
        cat = model.get_entity_type("Cat")
        assert cat.find_primary_key() is model.get_entity_type("Animal").keys[0]
        assert cat.find_property("Kind") is not None
        assert cat.discriminator_property.name == "Kind"
        assert [p.name for p in cat.properties] == ["Lives"]

    def test_root_entity_types(self, model: RelationalModel) -> None:
        assert [e.name for e in model.get_root_entity_types()] == ["Animal"]
        assert len(model) == 4
        assert [e.name for e in model] == ["Animal", "Pet", "Cat", "Bird"]


class TestOwnershipPath:
    """Tests for is_in_ownership_path."""

    @pytest.fixture()
    def model(self) -> RelationalModel:
        return build_model(
            {
                "entity_types": [
                    entity("Customer", [prop("Id")], table="Customers"),
                    entity("VipCustomer", [], keys=[], base_type="Customer"),
                    entity("Address", [prop("Id")], owner="Customer"),
                    entity("GeoPoint", [prop("Id")], owner="Address"),
                ]
            }
        )

    def test_direct_and_transitive_owner(self, model: RelationalModel) -> None:
        customer = model.get_entity_type("Customer")
        address = model.get_entity_type("Address")
        geo = model.get_entity_type("GeoPoint")
        assert is_in_ownership_path(address, customer)
        assert is_in_ownership_path(geo, customer)
        assert not is_in_ownership_path(customer, geo)

    def test_owner_matches_derived_target(self, model: RelationalModel) -> None:
        address = model.get_entity_type("Address")
        assert is_in_ownership_path(address, model.get_entity_type("VipCustomer"))


# ===========================================================================
# Reference resolution
# ===========================================================================


class TestFromDefinitionErrors:
    """Tests for references the accessor cannot resolve."""

    def test_unknown_key_property(self) -> None:
        with pytest.raises(ValueError, match="unknown property 'Missing'"):
            build_model({"entity_types": [entity("A", [prop("Id")], keys=[primary_key("Missing")])]})

    def test_unknown_discriminator_property(self) -> None:
        with pytest.raises(ValueError, match="discriminator"):
            build_model(
                {"entity_types": [entity("A", [prop("Id")], discriminator_property="Kind")]}
            )

    def test_principal_without_primary_key(self) -> None:
        with pytest.raises(ValueError, match="does not target a key"):
            build_model(
                {
                    "entity_types": [
                        entity("P", [prop("Id")], keys=[]),
                        entity(
                            "D",
                            [prop("Id"), prop("PId")],
                            foreign_keys=[{"properties": ["PId"], "principal_entity": "P"}],
                        ),
                    ]
                }
            )

    def test_principal_key_arity(self) -> None:
        with pytest.raises(ValueError, match="principal key has 2"):
            build_model(
                {
                    "entity_types": [
                        entity("P", [prop("A"), prop("B")], keys=[primary_key("A", "B")]),
                        entity(
                            "D",
                            [prop("Id"), prop("PId")],
                            foreign_keys=[{"properties": ["PId"], "principal_entity": "P"}],
                        ),
                    ]
                }
            )


class TestDbFunction:
    def test_function_name_defaults_to_name(self) -> None:
        function = DbFunction(DbFunctionDefinition(name="Discount", return_type="decimal"))
        assert function.function_name == "Discount"
        assert function.parameters == ()

    def test_empty_function_name_is_kept(self) -> None:
        function = DbFunction(
            DbFunctionDefinition(name="Discount", function_name="", return_type="decimal", schema="")
        )
        assert function.function_name == ""
        assert function.schema is None
