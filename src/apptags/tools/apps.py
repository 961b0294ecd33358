"""Interactive application and tag pickers."""

from __future__ import annotations

from typing import Any, Iterable, Optional, Sequence

from apptags.apps import Application, app_key
from apptags.store.tags import ordered_definitions, resolve_tags
from apptags.store.tags_types import StoredTags


def format_app(app: Application, state: Optional[StoredTags] = None) -> str:
    """Return a picker label such as ``Safari  #web #daily``."""
    label = app["name"]
    if state is None:
        return label
    names = [f"#{definition['name']}" for definition in resolve_tags(state, app_key(app))]
    if names:
        label = f"{label}  {' '.join(names)}"
    return label


def _prompt(questions: list[dict[str, Any]]) -> Any:
    try:
        from InquirerPy.resolver import prompt
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError("InquirerPy is required for interactive pickers.") from exc
    return prompt(questions)


def choose_app(apps: Sequence[Application], state: Optional[StoredTags] = None) -> Application | None:
    """Interactively choose an application using InquirerPy's fuzzy prompt.

    Parameters
    ----------
    apps
        Applications to offer, in display order.
    state
        Loaded tags; when given, labels show each application's tag names.

    Returns
    -------
    Application | None
        Selected application, or None if the user cancels.
    """
    if not apps:
        return None
    choices: list[dict[str, Any]] = [{"name": " X Cancel", "value": None}]
    choices.extend({"name": format_app(app, state), "value": app} for app in apps)

    result = _prompt(
        [
            {
                "type": "fuzzy",
                "name": "app",
                "message": "Select an application",
                "choices": choices,
            }
        ]
    )
    if not isinstance(result, dict):
        return None
    selection = result.get("app")
    if not isinstance(selection, dict):
        return None
    return selection  # type: ignore[return-value]


def choose_tags(state: StoredTags, selected: Iterable[str] = ()) -> list[str] | None:
    """Interactively pick tags with a checkbox prompt.

    Returns
    -------
    list[str] | None
        Chosen tag ids in display order, or None if the prompt returned
        nothing usable.
    """
    preselected = set(selected)
    definitions = ordered_definitions(state)
    choices = [
        {"name": definition["name"], "value": definition["id"], "enabled": definition["id"] in preselected}
        for definition in definitions
    ]
    result = _prompt(
        [
            {
                "type": "checkbox",
                "name": "tags",
                "message": "Select tags",
                "choices": choices,
            }
        ]
    )
    if not isinstance(result, dict):
        return None
    chosen = result.get("tags")
    if not isinstance(chosen, list):
        return None
    picked = {tag_id for tag_id in chosen if isinstance(tag_id, str)}
    return [definition["id"] for definition in definitions if definition["id"] in picked]
