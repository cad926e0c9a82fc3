"""
tests/conftest.py
Shared fixtures for the relcheck test suite.

Model fixtures are plain dicts shaped like the ``model`` section of a model
file, so each test can mutate its own copy before building definitions.
Real file I/O happens inside pytest's tmp_path directories.
"""

from __future__ import annotations

import copy
import pathlib
from typing import Any, Dict, List, Optional

import pytest
import yaml

from relcheck.metadata import RelationalModel
from relcheck.models import ModelDefinition
from relcheck.typemapping import TypeMappingSource


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

ROOT_DIR: pathlib.Path = pathlib.Path(__file__).resolve().parent.parent
MODEL_EXAMPLE_PATH: pathlib.Path = ROOT_DIR / "model_example.yaml"


# ---------------------------------------------------------------------------
# Dict builders
# ---------------------------------------------------------------------------


def prop(name: str, value_type: str = "int", **options: Any) -> Dict[str, Any]:
    """Property dict; ``options`` are any other PropertyDefinition fields."""
    return {"name": name, "value_type": value_type, **options}


def primary_key(*properties: str, name: Optional[str] = None) -> Dict[str, Any]:
    key: Dict[str, Any] = {"properties": list(properties), "primary": True}
    if name is not None:
        key["name"] = name
    return key


def entity(
    name: str,
    properties: List[Dict[str, Any]],
    keys: Optional[List[Dict[str, Any]]] = None,
    **options: Any,
) -> Dict[str, Any]:
    """Entity type dict with a primary key on ``Id`` unless ``keys`` is given."""
    return {
        "name": name,
        "properties": properties,
        "keys": [primary_key("Id")] if keys is None else keys,
        **options,
    }


def build_model(raw: Dict[str, Any]) -> RelationalModel:
    """Validate ``raw`` as a model definition and build its accessor."""
    return RelationalModel.from_definition(ModelDefinition.model_validate(raw))


# ---------------------------------------------------------------------------
# Reference model file
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def raw_model_file() -> Dict[str, Any]:
    """Load the reference model_example.yaml once per session."""
    assert MODEL_EXAMPLE_PATH.exists(), (
        f"Reference model not found at {MODEL_EXAMPLE_PATH}. "
        "Make sure model_example.yaml is in the project root."
    )
    with open(MODEL_EXAMPLE_PATH, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    assert isinstance(data, dict), "Top-level YAML must be a mapping."
    return data


@pytest.fixture()
def model_file_dict(raw_model_file: Dict[str, Any]) -> Dict[str, Any]:
    """Deep copy of the whole file (``config`` + ``model``)."""
    return copy.deepcopy(raw_model_file)


@pytest.fixture()
def example_model_dict(model_file_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Just the ``model`` section of the reference file."""
    return model_file_dict["model"]


@pytest.fixture()
def write_yaml(tmp_path: pathlib.Path):
    """Return a callable writing a dict to a YAML file under tmp_path."""

    def _write(data: Dict[str, Any], name: str = "model.yaml") -> pathlib.Path:
        path = tmp_path / name
        with open(path, "w", encoding="utf-8") as fh:
            yaml.dump(data, fh, default_flow_style=False, allow_unicode=True)
        return path

    return _write


@pytest.fixture()
def type_mapping() -> TypeMappingSource:
    return TypeMappingSource("postgresql")


# ---------------------------------------------------------------------------
# Shared-table scenarios
# ---------------------------------------------------------------------------


@pytest.fixture()
def animal_hierarchy_dict() -> Dict[str, Any]:
    """Animal ← Pet ← Cat on one table, discriminated by ``Kind``."""
    return {
        "entity_types": [
            entity(
                "Animal",
                [prop("Id"), prop("Kind", "str", nullable=False), prop("Name", "str")],
                table="Animals",
                discriminator_property="Kind",
                discriminator_value="Animal",
            ),
            entity(
                "Pet",
                [prop("OwnerName", "str")],
                keys=[],
                base_type="Animal",
                discriminator_value="Pet",
            ),
            entity(
                "Cat",
                [prop("Lives")],
                keys=[],
                base_type="Pet",
                discriminator_value="Cat",
            ),
        ]
    }


@pytest.fixture()
def table_splitting_dict() -> Dict[str, Any]:
    """Order and OrderDetail split one table through an identifying FK."""
    return {
        "entity_types": [
            entity(
                "Order",
                [prop("Id"), prop("Status", "str", nullable=False)],
                table="Orders",
            ),
            entity(
                "OrderDetail",
                [
                    prop("Id"),
                    prop("Status", "str", nullable=False),
                    prop("ShippingNotes", "str"),
                ],
                table="Orders",
                foreign_keys=[
                    {"properties": ["Id"], "principal_entity": "Order", "on_delete": "CASCADE"}
                ],
            ),
        ]
    }


@pytest.fixture()
def unrelated_shared_dict() -> Dict[str, Any]:
    """Customer and Invoice on one table without any relationship."""
    return {
        "entity_types": [
            entity("Customer", [prop("Id"), prop("Name", "str")], table="Shared"),
            entity("Invoice", [prop("Id"), prop("Total", "decimal")], table="Shared"),
        ]
    }


@pytest.fixture()
def balance_mismatch_dict() -> Dict[str, Any]:
    """Customer and VipCustomer map ``Balance`` with different nullability."""
    return {
        "entity_types": [
            entity(
                "Customer",
                [
                    prop("Id"),
                    prop("Kind", "str", nullable=False),
                    prop("Balance", "decimal", nullable=False),
                ],
                table="Customers",
                discriminator_property="Kind",
                discriminator_value="Customer",
            ),
            entity(
                "VipCustomer",
                [prop("Balance", "decimal", nullable=True)],
                keys=[],
                base_type="Customer",
                discriminator_value="Vip",
            ),
        ]
    }
