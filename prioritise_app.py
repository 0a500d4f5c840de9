#!/usr/bin/env python3
"""
Prioritise Everything - Desktop Application

A graphical interface for ranking a list of items by answering
"which matters more?" comparisons, one pair at a time.

Usage:
    python prioritise_app.py

State is saved to the same file the command-line tool uses
($PRIORITISE_STATE or ~/.prioritise/state.json).

Requirements:
    pip install flet pandas networkx openpyxl
"""

import multiprocessing
import os
import subprocess
import sys
from pathlib import Path

import flet as ft

from prioritise import (
    DEFAULT_STATE_PATH,
    JsonStateStore,
    Prioritiser,
    PrioritiseError,
    DuplicateItem,
    export_ranking,
    find_intransitive_groups,
    list_title,
    to_title_case,
)


def main(page: ft.Page):
    """Main application entry point."""

    # Page configuration
    page.title = "Prioritise Everything"
    page.window.width = 900
    page.window.height = 800
    page.padding = 30
    page.theme_mode = ft.ThemeMode.LIGHT

    # State
    prioritiser = Prioritiser(store=JsonStateStore(DEFAULT_STATE_PATH))
    last_export_dir = None

    # --- UI Components ---

    title = ft.Text(
        list_title(prioritiser.display_name),
        size=32,
        weight=ft.FontWeight.BOLD,
    )

    subtitle = ft.Text(
        "Add your items, then pick which matters more, two at a time",
        size=16,
        color=ft.Colors.GREY_700,
    )

    status_text = ft.Text("", size=14, color=ft.Colors.GREY_700)

    def show_status(message: str, color=ft.Colors.GREY_700):
        status_text.value = message
        status_text.color = color

    # Items
    item_input = ft.TextField(
        hint_text="Add an item and press Enter",
        width=420,
        autofocus=True,
    )
    item_list = ft.Column([], spacing=2)

    name_input = ft.TextField(
        label="Your name (shown in the list title)",
        value=prioritiser.display_name,
        width=320,
    )

    # Comparison
    progress_text = ft.Text("", size=14, color=ft.Colors.GREY_600)
    compare_container = ft.Container(
        padding=20,
        border_radius=10,
        bgcolor=ft.Colors.GREY_100,
        content=ft.Column([]),
    )

    # Ranking
    ranking_list = ft.Column([], spacing=4)

    def on_add(_):
        try:
            item = prioritiser.add_item(item_input.value or "")
            show_status(f"Added: {item.title}", ft.Colors.GREEN_700)
        except DuplicateItem as e:
            show_status(f"Already on the list: {e.existing.title}", ft.Colors.ORANGE_700)
        except PrioritiseError as e:
            show_status(f"Error: {e}", ft.Colors.RED_700)
        item_input.value = ""
        render()
        item_input.focus()

    item_input.on_submit = on_add

    def on_name_change(_):
        prioritiser.set_display_name(name_input.value or "")
        title.value = list_title(prioritiser.display_name)
        page.update()

    name_input.on_change = on_name_change

    def confirm(message: str, on_yes):
        """Show a yes/no dialog and run on_yes if confirmed."""
        def close(confirmed: bool):
            page.close(dialog)
            if confirmed:
                on_yes()

        dialog = ft.AlertDialog(
            modal=True,
            title=ft.Text("Please confirm"),
            content=ft.Text(message),
            actions=[
                ft.TextButton("Cancel", on_click=lambda _: close(False)),
                ft.TextButton("Yes", on_click=lambda _: close(True)),
            ],
        )
        page.open(dialog)

    def remove_item(item_id: str):
        item = prioritiser.remove_item(item_id)
        if item is not None:
            show_status(f"Removed: {item.title}")
        render()

    def decide(key: str, winner_id: str):
        try:
            prioritiser.decide(key, winner_id)
        except PrioritiseError as e:
            show_status(f"Error: {e}", ft.Colors.RED_700)
        render()

    def on_undo(_):
        if prioritiser.undo() is None:
            show_status("Nothing to undo")
        else:
            show_status("Last choice undone")
        render()

    def on_reset(_):
        def reset():
            prioritiser.reset_all()
            name_input.value = ""
            title.value = list_title("")
            show_status("All items and comparisons removed")
            render()

        confirm("Reset all items and comparisons? This cannot be undone.", reset)

    # --- Rendering ---

    def render_items():
        rows = []
        for item in prioritiser.items:
            rows.append(
                ft.Row([
                    ft.Text(item.title, width=380),
                    ft.IconButton(
                        icon=ft.Icons.CLOSE,
                        icon_color=ft.Colors.RED_400,
                        tooltip="Remove item",
                        on_click=lambda _, item=item: confirm(
                            f'Remove item: "{item.title}"?',
                            lambda: remove_item(item.id),
                        ),
                    ),
                ])
            )
        item_list.controls = rows

    def render_compare():
        progress_text.value = f"{prioritiser.progress()} comparisons decided"
        prompt = prioritiser.current_prompt()

        if prompt.status == "too_few":
            compare_container.content = ft.Text(
                "Add at least two items to start comparing.",
                color=ft.Colors.GREY_700,
            )
            return

        if prompt.status == "done":
            compare_container.content = ft.Row([
                ft.Icon(ft.Icons.CHECK_CIRCLE, color=ft.Colors.GREEN_700),
                ft.Text(
                    "All comparisons complete",
                    weight=ft.FontWeight.BOLD,
                    color=ft.Colors.GREEN_900,
                ),
            ])
            return

        def choice_button(item):
            return ft.ElevatedButton(
                item.title,
                width=300,
                height=60,
                on_click=lambda _: decide(prompt.key, item.id),
            )

        compare_container.content = ft.Column([
            ft.Text("Which matters more?", weight=ft.FontWeight.BOLD, size=16),
            ft.Row([
                choice_button(prompt.item_a),
                ft.Text("or", color=ft.Colors.GREY_600),
                choice_button(prompt.item_b),
            ], spacing=20),
        ], spacing=10)

    def render_ranking():
        snapshot = prioritiser.ranking_snapshot()
        rows = []
        for entry in snapshot.entries:
            record = f"{entry.wins} win{'s' if entry.wins != 1 else ''}"
            if entry.losses:
                record += f", {entry.losses} loss{'es' if entry.losses != 1 else ''}"
            rows.append(
                ft.Row([
                    ft.Text(f"{entry.position}.", width=40, weight=ft.FontWeight.BOLD),
                    ft.Text(to_title_case(entry.item.title), width=350),
                    ft.Text(record, color=ft.Colors.GREY_600),
                ])
            )

        for group in find_intransitive_groups(prioritiser.items, prioritiser.decisions):
            rows.append(
                ft.Text(
                    "Note: intransitive choices among " + ", ".join(group),
                    size=12,
                    color=ft.Colors.ORANGE_700,
                )
            )
        ranking_list.controls = rows

    def render():
        render_items()
        render_compare()
        render_ranking()
        has_items = bool(prioritiser.items)
        export_button.disabled = not has_items
        export_button.tooltip = (
            "Export the ranking to Excel" if has_items else "Add at least one item to export"
        )
        page.update()

    # --- Export ---

    def on_export_picked(e: ft.FilePickerResultEvent):
        nonlocal last_export_dir
        if not e.path:
            return
        output_path = Path(e.path)
        if output_path.suffix.lower() not in (".xlsx", ".csv"):
            output_path = output_path.with_suffix(".xlsx")
        try:
            export_ranking(prioritiser, output_path)
            last_export_dir = str(output_path.parent)
            show_status(f"Saved ranking to {output_path.name}", ft.Colors.GREEN_700)
            open_folder_button.visible = True
        except Exception as err:
            show_status(f"Error: {str(err)}", ft.Colors.RED_700)
        page.update()

    export_picker = ft.FilePicker(on_result=on_export_picked)
    page.overlay.append(export_picker)

    export_button = ft.ElevatedButton(
        "Export Ranking",
        icon=ft.Icons.DOWNLOAD,
        on_click=lambda _: export_picker.save_file(
            dialog_title="Save ranking",
            file_name="prioritised-list.xlsx",
            allowed_extensions=["xlsx", "csv"],
        ),
    )

    def open_output_folder(_):
        if not last_export_dir:
            return
        if sys.platform == "win32":
            os.startfile(last_export_dir)
        elif sys.platform == "darwin":
            subprocess.run(["open", last_export_dir])
        else:
            subprocess.run(["xdg-open", last_export_dir])

    open_folder_button = ft.TextButton(
        "Open Output Folder",
        icon=ft.Icons.FOLDER,
        visible=False,
        on_click=open_output_folder,
    )

    undo_button = ft.OutlinedButton("Undo", icon=ft.Icons.UNDO, on_click=on_undo)

    reset_button = ft.TextButton(
        "Reset All",
        icon=ft.Icons.DELETE_FOREVER,
        style=ft.ButtonStyle(color=ft.Colors.RED_700),
        on_click=on_reset,
    )

    # --- Layout ---

    page.add(
        ft.Column([
            title,
            subtitle,
            ft.Container(height=20),

            # Items
            ft.Row([
                item_input,
                ft.ElevatedButton("Add", icon=ft.Icons.ADD, on_click=on_add),
                reset_button,
            ], spacing=20),
            item_list,

            ft.Divider(),

            # Comparison
            ft.Row([
                ft.Text("Compare", weight=ft.FontWeight.BOLD, size=18),
                progress_text,
                undo_button,
            ], spacing=20),
            compare_container,

            ft.Divider(),

            # Ranking
            ft.Text("Ranking", weight=ft.FontWeight.BOLD, size=18),
            ranking_list,
            ft.Container(height=10),
            ft.Row([name_input, export_button, open_folder_button], spacing=20),

            ft.Container(height=10),
            status_text,

        ], spacing=5, scroll=ft.ScrollMode.AUTO, expand=True)
    )

    render()


def run():
    multiprocessing.freeze_support()  # Required for PyInstaller on Windows
    ft.app(target=main)


if __name__ == "__main__":
    run()
