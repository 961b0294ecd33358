"""CLI demo that exercises the :class:`apptags.Launcher` helpers.

Run with the virtual environment activated::

    python examples/demo_apptags.py

Set ``APPTAGS_STORE_PATH`` to use a store other than
``~/.apptags/store.json``.
"""

import asyncio
import logging
import os
import sys

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC_DIR = os.path.join(PROJECT_ROOT, "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from apptags import Launcher, app_key
from apptags.tools.apps import choose_app, choose_tags

logging.basicConfig(level=logging.INFO)


async def main() -> None:
    launcher = Launcher()
    view = launcher.browse()
    await view.mount()
    try:
        print(f"Found {len(view.results)} applications")

        if not view.state["definitions"]:
            await view.create_tag("Work", "#FF0000")
            await view.create_tag("Home", "#00AA55")
            await view.flush()

        app = choose_app(view.results, view.state)
        if app is None:
            return

        current = view.state["assignments"].get(app_key(app), [])
        tag_ids = choose_tags(view.state, selected=current)
        if tag_ids is None:
            return
        await view.save_tags(app, tag_ids)
        await view.flush()

        names = [definition["name"] for definition in view.accessories(app)]
        print(f"\n{app['name']} [{app['path']}] - tags: {', '.join(names) or '(none)'}")

        view.set_search_text(f"#{names[0]}" if names else "")
        print(f"Applications matching {view.search_text!r}:")
        for match in view.visible_apps:
            print(f"  {match['name']}")
    finally:
        await view.unmount()


if __name__ == "__main__":
    asyncio.run(main())
