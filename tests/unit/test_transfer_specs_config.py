"""
Tests unitarios para la carga de TransferSpecs desde JSON.
"""
from __future__ import annotations

import json
from pathlib import Path

import pytest

from record_sync.application.dto.transfer_dto import DuplicateCheckDTO, TransferSpecDTO
from record_sync.domain.entities.transfer_spec import (
    ColumnPair,
    CompoundKeyCheck,
    PrimaryKeyCheck,
)
from record_sync.infrastructure.config.transfer_specs import (
    load_transfer_config,
    parse_transfer_config,
)
from record_sync.shared.exceptions.sync import ConfigurationError


REPO_CONFIG = Path(__file__).resolve().parents[2] / "config" / "transfers.json"


def _entry(**overrides) -> dict:
    entry = {
        "name": "forecast_to_upcoming",
        "sourceTable": "forecast",
        "destinationTable": "upcoming",
        "columnMapping": {"1": 1, "2": 2, "4": 3},
        "duplicateCheck": {"primaryIdSourceCol": 1, "primaryIdDestCol": 1, "nameSourceCol": 2, "nameDestCol": 2},
    }
    entry.update(overrides)
    return entry


class TestTransferSpecDTO:
    """Validación del esquema JSON."""

    def test_primary_variant_when_both_id_columns_set(self) -> None:
        spec = TransferSpecDTO.model_validate(_entry()).to_domain()

        assert isinstance(spec.duplicate_check, PrimaryKeyCheck)
        assert spec.column_mapping == (ColumnPair(1, 1), ColumnPair(2, 2), ColumnPair(4, 3))
        assert spec.lock_name == "transfer"

    def test_compound_variant_without_id(self) -> None:
        dto = DuplicateCheckDTO.model_validate(
            {
                "nameSourceCol": 2,
                "nameDestCol": 1,
                "compoundKeySourceCols": [3, 4],
                "compoundKeyDestCols": [2, 3],
                "keySeparator": "::",
            }
        )

        check = dto.to_domain()

        assert isinstance(check, CompoundKeyCheck)
        assert check.extra_pairs == (ColumnPair(3, 2), ColumnPair(4, 3))
        assert check.separator == "::"

    def test_mismatched_compound_lengths_rejected(self) -> None:
        with pytest.raises(ValueError):
            DuplicateCheckDTO.model_validate(
                {"nameSourceCol": 2, "nameDestCol": 1, "compoundKeySourceCols": [3], "compoundKeyDestCols": []}
            )

    def test_many_to_one_mapping_rejected(self) -> None:
        with pytest.raises(ValueError):
            TransferSpecDTO.model_validate(_entry(columnMapping={"1": 1, "2": 1}))

    def test_unknown_field_rejected(self) -> None:
        with pytest.raises(ValueError):
            TransferSpecDTO.model_validate(_entry(sincronizar=True))

    def test_check_without_any_identity_rejected(self) -> None:
        with pytest.raises(ValueError):
            DuplicateCheckDTO.model_validate({"enabled": True})


class TestLoader:
    """Tests para load_transfer_config()/parse_transfer_config()."""

    def test_accepts_plain_list(self) -> None:
        config = parse_transfer_config([_entry(), _entry(name="otra")])

        assert sorted(config.specs) == ["forecast_to_upcoming", "otra"]

    def test_duplicate_names_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            parse_transfer_config([_entry(), _entry()])

    def test_invalid_schema_wrapped_in_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            parse_transfer_config({"transfers": [{"name": "x"}]})

        assert exc_info.value.details["errors"]

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(ConfigurationError):
            load_transfer_config(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path) -> None:
        path = tmp_path / "bad.json"
        path.write_text("{no es json", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            load_transfer_config(path)

    def test_reads_tables_and_transfers(self, tmp_path) -> None:
        path = tmp_path / "transfers.json"
        path.write_text(
            json.dumps({"tables": {"forecast": ["ID", "Proyecto"]}, "transfers": [_entry()]}),
            encoding="utf-8",
        )

        config = load_transfer_config(path)

        assert config.table_headers == {"forecast": ["ID", "Proyecto"]}
        assert list(config.specs) == ["forecast_to_upcoming"]

    def test_repository_config_is_valid(self) -> None:
        """El archivo de ejemplo del repo carga sin errores."""
        config = load_transfer_config(REPO_CONFIG)

        assert set(config.specs) == {"forecast_to_upcoming", "upcoming_to_inventory", "inventory_to_framing"}
        for spec in config.specs.values():
            assert spec.destination_table in config.table_headers
            assert spec.max_dest_column <= len(config.table_headers[spec.destination_table])
