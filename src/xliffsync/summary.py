from __future__ import annotations

from dataclasses import dataclass, field

from .catalogs.base import TransUnit


@dataclass(frozen=True)
class AutoTranslateResult:
    success: bool
    details: str | None = None


@dataclass
class AutoTranslateSummaryReport:
    """Counters of one auto translation run from one language to another."""

    from_lang: str
    to_lang: str
    total: int = 0
    ignored: int = 0
    success: int = 0
    failed: int = 0
    error: str | None = None
    results: dict[str, AutoTranslateResult] = field(default_factory=dict)

    def set_error(self, error: str, total: int) -> None:
        self.error = error
        self.total = total
        self.failed = total

    def set_ignored(self, ignored: int) -> None:
        self.total += ignored
        self.ignored = ignored

    def add_single_result(self, unit: TransUnit | str, result: AutoTranslateResult) -> None:
        unit_id = unit if isinstance(unit, str) else unit.id
        self.total += 1
        if result.success:
            self.success += 1
        else:
            self.failed += 1
        self.results[unit_id] = result

    def merge(self, other: "AutoTranslateSummaryReport") -> None:
        if self.error is None:
            self.error = other.error
        self.total += other.total
        self.ignored += other.ignored
        self.success += other.success
        self.failed += other.failed
        self.results.update(other.results)

    def failed_results(self) -> dict[str, AutoTranslateResult]:
        return {unit_id: r for unit_id, r in self.results.items() if not r.success}

    def content(self) -> str:
        if self.error:
            return (
                f'Auto translation from "{self.from_lang}" to "{self.to_lang}" failed: '
                f'"{self.error}", failed units: {self.failed}'
            )
        return (
            f'Auto translation from "{self.from_lang}" to "{self.to_lang}", '
            f"total auto translated units: {self.total}, ignored: {self.ignored}, "
            f"succesful: {self.success}, failed: {self.failed}"
        )
