"""
Kernel boundary contract.

1. catering_kernel/** may NOT import catering_services or catering_config.
   The kernel never depends upward.

2. catering_kernel/domain/** is pure: no ORM, database or store imports.

3. catering_config may reach into the kernel's domain types (that is what
   the bridges are for) but never into its services or storage.

4. The kernel invariants declaration is complete and non-empty.

These tests read source code via AST -- they cannot break anything.
"""

import ast
import glob
from pathlib import Path

from catering_kernel.invariants import (
    ALL_LEDGER_INVARIANTS,
    FORBIDDEN_KERNEL_IMPORTS,
    LedgerInvariant,
)

ROOT = Path(__file__).resolve().parents[2]


def _python_files(package: str) -> list[Path]:
    return sorted(Path(p) for p in glob.glob(str(ROOT / package / "**" / "*.py"), recursive=True))


def _extract_imports(filepath: Path) -> list[tuple[int, str]]:
    """Extract (line_number, module_string) for all imports in a file."""
    tree = ast.parse(filepath.read_text(), filename=str(filepath))
    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom) and node.module:
            results.append((node.lineno, node.module))
    return results


def _violations(package: str, forbidden: tuple[str, ...]) -> list[str]:
    found = []
    for filepath in _python_files(package):
        for lineno, module in _extract_imports(filepath):
            for prefix in forbidden:
                if module == prefix or module.startswith(f"{prefix}."):
                    found.append(f"  {filepath.relative_to(ROOT)}:{lineno} imports '{module}'")
    return found


class TestKernelNoUpwardDependencies:
    """catering_kernel/** must not import catering_services or catering_config."""

    def test_package_present(self):
        assert _python_files("catering_kernel")

    def test_kernel_does_not_import_forbidden_packages(self):
        violations = _violations("catering_kernel", FORBIDDEN_KERNEL_IMPORTS)
        assert not violations, (
            "Kernel boundary violation -- catering_kernel/** must not import "
            "upward packages:\n" + "\n".join(violations)
        )


class TestKernelDomainPurity:
    """catering_kernel/domain/** must not import ORM, DB or service code."""

    FORBIDDEN_MODULES = (
        "sqlalchemy",
        "sqlite3",
        "yaml",
        "catering_kernel.db",
        "catering_kernel.services",
    )

    def test_domain_no_io_imports(self):
        violations = _violations("catering_kernel/domain", self.FORBIDDEN_MODULES)
        assert not violations, (
            "Domain purity violation -- catering_kernel/domain/** must not "
            "import storage or service modules:\n" + "\n".join(violations)
        )


class TestConfigBoundary:
    """catering_config reaches the kernel only through domain types."""

    FORBIDDEN_MODULES = (
        "catering_services",
        "catering_kernel.db",
        "catering_kernel.services",
    )

    def test_config_imports(self):
        violations = _violations("catering_config", self.FORBIDDEN_MODULES)
        assert not violations, (
            "Config boundary violation:\n" + "\n".join(violations)
        )


class TestInvariantDeclaration:

    def test_declared(self):
        assert ALL_LEDGER_INVARIANTS == frozenset(LedgerInvariant)
        assert LedgerInvariant.AUDIT_APPEND_ONLY in ALL_LEDGER_INVARIANTS
        assert len(ALL_LEDGER_INVARIANTS) == 7
