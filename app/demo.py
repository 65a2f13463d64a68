"""
Mindsweeper - Interactive Demo

Run with: streamlit run app/demo.py
"""

import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import streamlit as st
from typing import Dict, Optional, Tuple

from mindsweeper import (
    LOST,
    MODES,
    PRESETS,
    WON,
    GameConfig,
    InvalidConfiguration,
    Minesweeper,
)

COLORS = {
    "0": "#cccccc",
    "1": "#0000ff",
    "2": "#008000",
    "3": "#ff0000",
    "4": "#000080",
    "5": "#800000",
    "6": "#008080",
    "7": "#000000",
    "8": "#808080",
}

# forced_status / postmortem label -> hidden cell background
OVERLAY = {
    "forced_safe": "#c8f7c5",
    "forced_mine": "#ffd27f",
    "was_forced_safe": "#c8f7c5",
    "was_forced_mine": "#ffd27f",
    "was_undetermined": "#d9d2f5",
}


def render_board_html(
    game: Minesweeper,
    overlay: Optional[Dict[Tuple[int, int], str]] = None,
    highlight_cell: Optional[Tuple[int, int]] = None,
) -> str:
    """Render the board as HTML, optionally tinting hidden cells by label."""
    # Scale cell size based on board width
    if game.width >= 30:
        cell_size = 14
        font_size = "10px"
    elif game.width >= 25:
        cell_size = 16
        font_size = "11px"
    elif game.width >= 16:
        cell_size = 20
        font_size = "13px"
    else:
        cell_size = 26
        font_size = "15px"

    grid = game.symbol_grid(reveal_all=game.game_over)
    html = '<div style="font-family: monospace; line-height: 1.2;">'
    html += '<table style="border-collapse: collapse; margin: auto;">'

    for y, row in enumerate(grid):
        html += "<tr>"
        for x, symbol in enumerate(row):

            if symbol == "!":
                cell, bg, text_color = "M", "#ff0000", "#ffffff"
            elif symbol == "M":
                cell, bg, text_color = "M", "#ffcccc", "#ff0000"
            elif symbol == "F":
                cell, bg, text_color = "F", "#ffa500", "#ffffff"
            elif symbol != ".":
                cell = symbol
                bg = "#f0f0f0" if cell == "0" else "#ffffff"
                text_color = COLORS.get(cell, "#000000")
            else:
                cell = "."
                bg = "#c0c0c0"
                text_color = "#666666"

            if overlay and (x, y) in overlay:
                bg = OVERLAY.get(overlay[(x, y)], bg)

            border = "2px solid #ff0000" if (x, y) == highlight_cell else "1px solid #999"
            display = cell if cell != "0" else " "

            html += f'''<td style="
                width: {cell_size}px; height: {cell_size}px;
                text-align: center;
                background: {bg};
                border: {border};
                color: {text_color};
                font-weight: bold;
                font-size: {font_size};
            ">{display}</td>'''
        html += "</tr>"

    html += "</table></div>"
    return html


def new_game(config: GameConfig) -> None:
    previous = st.session_state.get("game")
    if previous is not None:
        previous.close()
    st.session_state.game = Minesweeper(config)
    st.session_state.message = None
    st.session_state.last_cell = None


def main():
    st.set_page_config(
        page_title="Mindsweeper",
        page_icon="💣",
        layout="wide",
    )

    st.title("Mindsweeper")
    st.markdown("""
    Minesweeper without guessing: every board can be cleared by deduction alone.
    """)

    # Sidebar configuration
    st.sidebar.header("Game Configuration")

    options = [name.capitalize() for name in PRESETS] + ["Custom"]
    preset = st.sidebar.selectbox("Difficulty Preset", options)

    if preset != "Custom":
        width, height, mines = PRESETS[preset.lower()]
    else:
        width = st.sidebar.slider("Width", 3, 30, 16)
        height = st.sidebar.slider("Height", 3, 30, 16)
        max_mines = width * height - 9
        mines = st.sidebar.slider("Mines", 1, max(1, max_mines), min(40, max(1, max_mines)))

    radius = st.sidebar.selectbox(
        "First-click safe radius",
        [1, 0],
        help="1: the first click and its neighbors are safe. 0: only the first click.",
    )
    mode = st.sidebar.selectbox(
        "Mode",
        list(MODES),
        help="mindless: boards only need each number read on its own. "
        "autopilot: those cells are revealed for you.",
    )
    punish = st.sidebar.checkbox(
        "Punish guessing",
        value=True,
        help="Revealing a cell that cannot be deduced is always a mine.",
    )
    show_forced = st.sidebar.checkbox("Show forced cells", value=False)

    try:
        config = GameConfig(
            width,
            height,
            mines,
            first_click_safe_radius=radius,
            punish_guessing=punish,
            mode=mode,
        )
    except InvalidConfiguration as exc:
        st.error(str(exc))
        return

    # Auto-generate new game when board settings change
    if st.session_state.get("config") != config:
        st.session_state.config = config
        new_game(config)

    game: Minesweeper = st.session_state.game

    st.subheader("Game Board")
    in_col1, in_col2 = st.columns(2)
    with in_col1:
        x = st.number_input("x (column)", 0, game.width - 1, game.width // 2)
    with in_col2:
        y = st.number_input("y (row)", 0, game.height - 1, game.height // 2)

    btn_col1, btn_col2, btn_col3, btn_col4 = st.columns(4)
    with btn_col1:
        if st.button("Reveal", type="primary"):
            status, payload = game.reveal(int(x), int(y))
            st.session_state.last_cell = (int(x), int(y))
            if status == LOST:
                st.session_state.message = ("error", "You hit a mine.")
            elif status == WON:
                st.session_state.message = ("success", "All safe cells revealed. You won!")
            elif not payload:
                st.session_state.message = ("info", "Nothing to reveal there.")
            else:
                st.session_state.message = None
    with btn_col2:
        if st.button("Flag"):
            game.toggle_flag(int(x), int(y))
    with btn_col3:
        if st.button("Hint"):
            cell = game.hint()
            st.session_state.last_cell = cell
            st.session_state.message = (
                ("info", "Make a first click anywhere.")
                if not game.generated
                else ("info", f"({cell[0]}, {cell[1]}) is safe.")
                if cell is not None
                else ("warning", "No forced-safe cell remains.")
            )
    with btn_col4:
        if st.button("New Board"):
            new_game(config)
            st.rerun()

    overlay: Optional[Dict[Tuple[int, int], str]] = None
    if game.status == LOST:
        overlay = game.postmortem()
    elif show_forced and game.generated and not game.game_over:
        overlay = game.forced_statuses()

    st.markdown(
        render_board_html(game, overlay, highlight_cell=st.session_state.last_cell),
        unsafe_allow_html=True,
    )

    message = st.session_state.message
    if message is not None:
        kind, text = message
        getattr(st, kind)(text)

    if game.status == LOST:
        verdict = overlay.get(game.losing_cell) if overlay and game.losing_cell else None
        if verdict == "was_undetermined":
            st.warning("That cell could not be deduced: it was a guess.")
        elif verdict == "was_forced_mine":
            st.warning("That cell was deducibly a mine.")

    # Board legend
    st.markdown("""
    <div style="font-size: 12px; margin-top: 10px;">
    <b>Legend:</b>
    <span style="background: #c0c0c0; color: #666666; padding: 2px 6px; margin: 0 4px; font-weight: bold;">.</span> Unrevealed
    <span style="background: #ffa500; color: white; padding: 2px 6px; margin: 0 4px; font-weight: bold;">F</span> Flagged
    <span style="background: #c8f7c5; padding: 2px 6px; margin: 0 4px;">&nbsp;</span> Forced safe
    <span style="background: #ffd27f; padding: 2px 6px; margin: 0 4px;">&nbsp;</span> Forced mine
    <span style="background: #d9d2f5; padding: 2px 6px; margin: 0 4px;">&nbsp;</span> Undetermined at loss
    <span style="background: #ff0000; color: white; padding: 2px 6px; margin: 0 4px; font-weight: bold;">M</span> Hit mine
    </div>
    """, unsafe_allow_html=True)

    st.sidebar.markdown("---")
    st.sidebar.metric("Revealed", game.revealed_count)
    st.sidebar.metric("Safe cells left", game.hidden_safe_count)
    if game.generated:
        low, high = game.mine_bounds()
        st.sidebar.text(f"Mines consistent with clues: {low}..{high}")


if __name__ == "__main__":
    main()
