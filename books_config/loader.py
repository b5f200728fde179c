"""
Configuration Loader (``books_config.loader``).

Responsibility
--------------
Loads a YAML engine configuration file and parses it into the typed,
frozen ``books_config.schema`` dataclasses.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  Depends on kernel models and
engine enums for the values it parses; nothing in the kernel or engines
imports from here.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required keys.
* Every parsed object is a frozen dataclass from ``schema.py``, so account
  specs go through the same type/classification checks as real accounts.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys in parsed dict  -> ``KeyError`` propagates.
* Unknown enum values or incompatible classifications -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from books_config.schema import (
    ROLE_NAMES,
    TEMPLATE_NAMES,
    AccountSpec,
    AccountTemplate,
    EngineConfig,
    EngineSettings,
    NegativeFormat,
    PostingConventions,
    Tolerances,
)
from books_engines.valuation import CostMethod
from books_kernel.domain.fiscal import FinancialYear
from books_kernel.logging_config import get_logger
from books_kernel.models.account import (
    AccountClassification,
    AccountType,
    FinalAccountCategory,
    is_compatible,
)

logger = get_logger("config.loader")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    return data


def _parse_template(data: dict[str, Any]) -> AccountTemplate:
    account_type = AccountType(data["type"])
    classification = AccountClassification(data["classification"])
    if not is_compatible(account_type, classification):
        raise ValueError(
            f"Classification {classification.value} is not valid for {account_type.value}"
        )
    category = data.get("final_category")
    return AccountTemplate(
        account_type=account_type,
        classification=classification,
        final_category=FinalAccountCategory(category) if category else None,
    )


def parse_account_spec(data: dict[str, Any]) -> AccountSpec:
    """Parse ``{name, type, classification, [final_category], [code]}``."""
    template = _parse_template(data)
    name = str(data["name"]).strip()
    if not name:
        raise ValueError("Account spec needs a non-empty name")
    code = data.get("code")
    return AccountSpec(
        name=name,
        account_type=template.account_type,
        classification=template.classification,
        final_category=template.final_category,
        code=str(code) if code is not None else None,
    )


def parse_settings(data: dict[str, Any]) -> EngineSettings:
    defaults = EngineSettings()
    return EngineSettings(
        inventory_method=CostMethod(data.get("inventory_method", defaults.inventory_method.value)),
        negative_format=NegativeFormat(data.get("negative_format", defaults.negative_format.value)),
        financial_year=FinancialYear(data.get("financial_year", defaults.financial_year.value)),
    )


def parse_tolerances(data: dict[str, Any]) -> Tolerances:
    defaults = Tolerances()
    values: dict[str, Decimal] = {}
    for name in ("balance", "trial_balance", "balance_sheet", "display_epsilon",
                 "anomaly", "depreciable_balance"):
        raw = data.get(name, getattr(defaults, name))
        value = Decimal(str(raw))
        if value < 0:
            raise ValueError(f"Tolerance {name} cannot be negative: {value}")
        values[name] = value
    return Tolerances(**values)


def parse_conventions(roles: dict[str, Any], templates: dict[str, Any]) -> PostingConventions:
    kwargs: dict[str, Any] = {}
    for role in ROLE_NAMES:
        kwargs[role] = parse_account_spec(roles[role])
    for name in TEMPLATE_NAMES:
        kwargs[name] = _parse_template(templates[name])
    return PostingConventions(**kwargs)


def parse_engine_config(data: dict[str, Any]) -> EngineConfig:
    """Parse a full configuration mapping."""
    default_accounts = tuple(parse_account_spec(a) for a in data["default_accounts"])
    names = [a.name.casefold() for a in default_accounts]
    if len(names) != len(set(names)):
        raise ValueError("default_accounts contains duplicate names")
    codes = [a.code for a in default_accounts if a.code is not None]
    if len(codes) != len(set(codes)):
        raise ValueError("default_accounts contains duplicate codes")
    return EngineConfig(
        config_id=str(data["config_id"]),
        version=int(data["version"]),
        conventions=parse_conventions(data["conventions"], data["templates"]),
        default_accounts=default_accounts,
        settings=parse_settings(data.get("settings") or {}),
        tolerances=parse_tolerances(data.get("tolerances") or {}),
    )


def load_engine_config(path: Path | str) -> EngineConfig:
    """Load and parse one YAML configuration file."""
    path = Path(path)
    data = load_yaml_file(path)
    config = parse_engine_config(data)
    logger.info("engine_config_loaded", extra={
        "config_id": config.config_id,
        "config_version": config.version,
        "path": str(path),
        "checksum": compute_checksum(data),
    })
    return config


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
