"""Dependency direction between the domain and infrastructure packages."""

from __future__ import annotations

import pathlib

import provisioner.domain


def test_domain_does_not_import_infrastructure() -> None:
    offenders = [
        path.name
        for root in provisioner.domain.__path__
        for path in pathlib.Path(root).rglob("*.py")
        if "provisioner.infrastructure" in path.read_text(encoding="utf-8")
    ]
    assert offenders == []
