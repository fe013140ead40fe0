from __future__ import annotations

from types import ModuleType

from . import audio, copyright, images, manifest_checks, security, structure


def get_checks() -> list[ModuleType]:
    return [
        structure,
        manifest_checks,
        audio,
        images,
        security,
        copyright,
    ]
