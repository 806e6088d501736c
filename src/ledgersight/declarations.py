# SMB LedgerSight - Ledger aggregation & reconciliation engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
VAT declaration generator.

Turns a ``VATBreakdown`` into the boxes of a country-specific VAT return.
Each supported format is a ``DeclarationFormat`` subclass registered under
its ISO country code with the ``register_format`` decorator:

- FR: CA3 (lines ``line01_ca_ht`` ... ``line28_tva_nette``),
- BE: Intervat (grids ``grid00``, ``grid54``, ``grid59``, ``grid71``,
  ``grid72``).

An unknown country raises ``UnsupportedCountryError``; there is no default
format. Declarations are returned as values (``VATDeclaration.to_dict`` is
JSON-serializable); writing files is left to the caller.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Dict, Type

import structlog

from .engine import VATBreakdown
from .errors import UnsupportedCountryError
from .periods import Period

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class VATDeclaration:
    """
    A generated VAT return.

    Attributes
    ----------
    format:
        Format name ("CA3", "Intervat").
    country:
        ISO country code the format is registered under.
    period:
        Declared period.
    section:
        Name of the box collection in the official form ("lines", "grids").
    values:
        Box key -> amount (2-decimal floats).
    summary:
        Raw keys ``collected``, ``deductible``, ``net``, ``is_credit`` plus
        the format's localized keys.
    """

    format: str
    country: str
    period: Period
    section: str
    values: Dict[str, float] = field(default_factory=dict)
    summary: Dict[str, Any] = field(default_factory=dict)

    @property
    def net(self) -> float:
        return self.summary["net"]

    @property
    def is_credit(self) -> bool:
        return self.summary["is_credit"]

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable view of the declaration."""
        return {
            "format": self.format,
            "country": self.country,
            "period": {
                "start": self.period.start.isoformat(),
                "end": self.period.end.isoformat(),
                "label": self.period.label,
            },
            self.section: dict(self.values),
            "summary": dict(self.summary),
        }


class DeclarationFormat:
    """Base class of a country-specific VAT return layout."""

    country: str = ""
    name: str = ""
    section: str = "lines"

    def boxes(self, breakdown: VATBreakdown, revenue: float) -> Dict[str, float]:
        raise NotImplementedError

    def localized_summary(
        self, collected: float, deductible: float, net: float
    ) -> Dict[str, float]:
        raise NotImplementedError

    def build(
        self, breakdown: VATBreakdown, revenue: float, period: Period
    ) -> VATDeclaration:
        collected = breakdown.output_vat
        deductible = breakdown.input_vat
        net = breakdown.net_vat
        summary: Dict[str, Any] = {
            "collected": collected,
            "deductible": deductible,
            "net": net,
            "is_credit": net < 0,
        }
        summary.update(self.localized_summary(collected, deductible, net))
        return VATDeclaration(
            format=self.name,
            country=self.country,
            period=period,
            section=self.section,
            values=self.boxes(breakdown, revenue),
            summary=summary,
        )


class FormatRegistry:
    def __init__(self):
        self._formats: Dict[str, Type[DeclarationFormat]] = {}

    def register(self, format_cls: Type[DeclarationFormat]) -> None:
        country = getattr(format_cls, "country", "")
        if not country:
            raise ValueError("Declaration format class missing country")
        if country in self._formats:
            raise ValueError(f"Duplicate declaration format for country: {country}")
        self._formats[country] = format_cls

    def get(self, country: str) -> Type[DeclarationFormat]:
        key = (country or "").strip().upper()
        try:
            return self._formats[key]
        except KeyError:
            raise UnsupportedCountryError(country) from None

    def countries(self) -> Iterable[str]:
        return self._formats.keys()


registry = FormatRegistry()


def register_format(format_cls: Type[DeclarationFormat]) -> Type[DeclarationFormat]:
    registry.register(format_cls)
    return format_cls


@register_format
class CA3Format(DeclarationFormat):
    """French monthly/quarterly VAT return (formulaire CA3)."""

    country = "FR"
    name = "CA3"
    section = "lines"

    def boxes(self, breakdown: VATBreakdown, revenue: float) -> Dict[str, float]:
        return {
            "line01_ca_ht": revenue,
            "line08_tva_collectee": breakdown.output_vat,
            "line08A_tva_20": breakdown.output_vat_at(20.0),
            "line08B_tva_10": breakdown.output_vat_at(10.0),
            "line09_tva_55": breakdown.output_vat_at(5.5),
            "line19_tva_deductible_biens": breakdown.input_goods,
            "line20_tva_deductible_services": breakdown.input_services,
            "line23_total_deductible": breakdown.input_vat,
            # Negative = VAT credit
            "line28_tva_nette": breakdown.net_vat,
        }

    def localized_summary(
        self, collected: float, deductible: float, net: float
    ) -> Dict[str, float]:
        return {
            "tva_collectee": collected,
            "tva_deductible": deductible,
            "tva_nette": net,
        }


@register_format
class IntervatFormat(DeclarationFormat):
    """Belgian periodic VAT return filed through Intervat."""

    country = "BE"
    name = "Intervat"
    section = "grids"

    def boxes(self, breakdown: VATBreakdown, revenue: float) -> Dict[str, float]:
        net = breakdown.net_vat
        return {
            "grid00": revenue,
            "grid54": breakdown.output_vat,
            "grid59": breakdown.input_vat,
            # 71 (to pay) and 72 (credit) are mutually exclusive
            "grid71": max(0.0, net),
            "grid72": max(0.0, -net),
        }

    def localized_summary(
        self, collected: float, deductible: float, net: float
    ) -> Dict[str, float]:
        return {
            "btw_verschuldigd": collected,
            "btw_aftrekbaar": deductible,
            "saldo": net,
        }


def get_declaration_format(country: str) -> DeclarationFormat:
    """
    Return the declaration format registered for ``country``.

    Raises:
        UnsupportedCountryError: if no format is registered for it.
    """
    return registry.get(country)()


def generate_vat_declaration(
    breakdown: VATBreakdown,
    revenue: float,
    period: Period,
    country: str,
) -> VATDeclaration:
    """
    Generate the VAT return of ``country`` for ``period``.

    Args:
        breakdown: VAT breakdown of the period.
        revenue: Revenue excluding VAT of the period.
        period: Declared period.
        country: ISO country code ("FR", "BE").

    Raises:
        UnsupportedCountryError: for any country without a registered format.
    """
    declaration = get_declaration_format(country).build(breakdown, revenue, period)
    log.info(
        "declaration.generated",
        format=declaration.format,
        country=declaration.country,
        period=period.label,
        net=declaration.net,
    )
    return declaration
