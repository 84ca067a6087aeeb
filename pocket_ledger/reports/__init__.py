"""Reporting package."""

from pocket_ledger.reports.statistics import StatsReporter

__all__ = ["StatsReporter"]
