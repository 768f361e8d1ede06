"""
Paginated, searchable table backed by TableController.

Demonstrates:
- local data (fixed mode) with client-side search, sort and pagination
- page / size / search mirrored into the URL (try back/forward)
- page size persisted in browser storage

Run:
    uv run python examples/table_demo.py
"""

from nicegui import ui

from nicetable.table_controller import TableConfig, TableController
from nicetable.table_controller.nicegui_adapters import NiceGuiBrowserStore, NiceGuiQueryParams, TableBinding
from nicetable.utils.logging import configure_logging

CITIES = ["Sacramento", "Baltimore", "Montreal", "Rome", "Lisbon"]

ROWS = [
    {"id": i, "name": f"Person {i:03d}", "city": CITIES[i % len(CITIES)], "score": round(50 + (i * 7.3) % 50, 1)}
    for i in range(1, 96)
]


@ui.page("/")
async def index() -> None:
    query_params = NiceGuiQueryParams()
    controller = TableController(
        TableConfig(results_per_page=10, columns={"id": {"hidden": False, "display_name": "ID"}}),
        data=ROWS,
        query_params=query_params,
        storage=NiceGuiBrowserStore(),
    )
    await controller.render()

    ui.label("nicetable demo").classes("text-2xl font-bold mb-2")

    search_input = ui.input("Search", value=controller.pagination.search).classes("w-64")

    table = ui.table(
        columns=[
            {"name": c.name, "label": c.display_name, "field": c.name, "sortable": c.sortable}
            for c in controller.columns or []
            if not c.hidden
        ],
        rows=[],
        row_key=controller.get_id_property(),
    ).classes("w-full")
    status = ui.label()

    async def refresh() -> None:
        rows = await controller.get_rows_to_display()
        if rows is None:
            return
        p = controller.pagination
        table.rows = rows
        table.update()
        last = min(p.last_object_number, p.total_rows_count)
        status.text = f"{p.first_object_number}-{last} of {p.total_rows_count} (page {p.page}/{p.total_page_count})"
        search_input.value = p.search

    binding = TableBinding(controller, query_params, on_refresh=refresh)
    search_input.on_value_change(lambda e: binding.on_search_input(e.value or ""))

    async def _move(move) -> None:
        move()
        await refresh()

    async def _size(e) -> None:
        controller.set_results_per_page(int(e.value))
        await refresh()

    with ui.row().classes("items-center gap-2"):
        ui.button("<<", on_click=lambda: _move(controller.go_to_first))
        ui.button("<", on_click=lambda: _move(controller.go_to_prev))
        ui.button(">", on_click=lambda: _move(controller.go_to_next))
        ui.button(">>", on_click=lambda: _move(controller.go_to_last))
        ui.select(
            list(controller.config.results_per_page_select),
            value=controller.pagination.results_per_page,
            on_change=_size,
        ).classes("w-24")
        for name in ("name", "city", "score"):
            ui.button(f"sort {name}", on_click=lambda n=name: _move(lambda: controller.sort_by(n)))

    await refresh()


def main() -> None:
    configure_logging(level="INFO")
    ui.run(storage_secret="nicetable-demo", reload=False)


if __name__ in {"__main__", "__mp_main__"}:
    main()
