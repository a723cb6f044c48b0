"""Nox sessions orchestrating httpctx_lib unit suites."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

import nox


PYTHON_VERSIONS = ["3.11"]
PROJECT_ROOT = Path(__file__).parent

nox.options.sessions = [
    "tests(unit_httpctx)",
]


def _install_test_requirements(session: nox.Session) -> None:
    """Install the package and the testing toolchain inside the session environment."""

    session.install("-e", ".[test]")


def _normalize_pythonpath(existing: str | None) -> str:
    parts = [str(PROJECT_ROOT)]
    if existing:
        parts.append(existing)
    return ":".join(part for part in parts if part)


def _build_env(session: nox.Session) -> dict[str, str]:
    env = dict(session.env)
    env["PYTHONPATH"] = _normalize_pythonpath(env.get("PYTHONPATH"))
    return env


def _run_suite(session: nox.Session, suite: str, targets: Iterable[str]) -> None:
    _install_test_requirements(session)

    env = _build_env(session)
    args = ["coverage", "run", "--source=httpctx_lib", "-m", "pytest", *targets]
    if session.posargs:
        args.extend(session.posargs)

    session.log("Running %s suite: %s", suite, " ".join(args))
    session.run(*args, env=env)
    session.run("coverage", "report", "-m", env=env)


@nox.session(python=PYTHON_VERSIONS, reuse_venv=True, name="tests(unit_httpctx)")
def tests_unit_httpctx(session: nox.Session) -> None:
    """Execute HTTP context enrichment unit suites under coverage."""

    targets = ["tests/unit/httpctx"]
    _run_suite(session, "httpctx", targets)
