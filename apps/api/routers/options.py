"""
Option sets for the registration and filter forms.
GET /options - every enumerated field with its allowed values and labels.
"""

from fastapi import APIRouter

from apps.api.registry.options import OPTION_SETS

router = APIRouter(tags=["Options"])


@router.get("/options")
def list_options() -> dict[str, list[dict[str, str]]]:
    return {
        name: [{"value": value, "label": label} for value, label in options]
        for name, options in OPTION_SETS.items()
    }
