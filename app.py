import os

import streamlit as st

from board import is_ladder, is_snake, snaked_cells
from config import load_settings, setup_logging
from errors import GatewayError
from orchestrator import RollPhase, TransactionFlow
from session import BackgroundLoop, BoardSession, report_failure
from utils.api import HttpGateway
from utils.chain import Web3Gateway, to_token_units
from utils.profiles import ProfileCache, short_address

settings = load_settings()

st.set_page_config(
    page_title="🐍 Snakes & Ladders",
    layout="wide"
)


@st.cache_resource
def get_loop():
    setup_logging(settings)
    return BackgroundLoop()


@st.cache_resource
def get_profiles():
    return ProfileCache(settings.profile_api_url, settings.profile_api_key)


def make_gateway():
    # a deployed contract when configured, otherwise the local dev chain
    if settings.private_key and os.path.exists(settings.abi_path):
        return Web3Gateway.from_settings(settings)
    return HttpGateway(st.session_state.account, api_base=settings.api_base)


def open_room(room_id):
    loop = get_loop()
    old = st.session_state.get("board")
    if old is not None:
        loop.run(old.close())
    session = BoardSession(make_gateway(), room_id, settings)
    loop.run(session.start())
    st.session_state.board = session
    st.session_state.room_id = room_id
    st.session_state.page = "board"


if "page" not in st.session_state:
    st.session_state.page = "setup"

# ============ setup ============
if st.session_state.page == "setup":
    st.title("🎲 Snakes & Ladders")

    st.session_state.account = st.text_input(
        "Wallet address", value=st.session_state.get("account", settings.account))
    if "room_id" not in st.session_state and st.session_state.account:
        try:
            st.session_state.room_id = make_gateway().get_last_room_id() or 1
        except GatewayError as e:
            st.warning(f"⚠️ Could not read the latest room: {e}")
            st.session_state.room_id = 1
    room_id = st.number_input("Room id", min_value=0, step=1, value=st.session_state.get("room_id", 1))

    col1, col2 = st.columns(2)
    with col1:
        if st.button("✅ Open room", disabled=not st.session_state.account or room_id <= 0):
            open_room(int(room_id))
            st.rerun()
    with col2:
        with st.expander("➕ Create a room"):
            players = st.selectbox("Players", [2, 3, 4])
            stake = st.number_input("Stake (USDC)", min_value=0.0, value=1.0, step=0.5)
            metadata = st.text_input("Game name", value="")
            if st.button("🚀 Create", disabled=not st.session_state.account):
                flow = TransactionFlow(make_gateway())
                new_id = get_loop().run(flow.create_room(players, to_token_units(stake), metadata))
                if new_id:
                    open_room(new_id)
                    st.rerun()
                else:
                    st.error("❌ " + (flow.error or "Room created but no id was reported"))

# ============ board ============
elif st.session_state.page == "board":
    session: BoardSession = st.session_state.board
    loop = get_loop()
    profiles = get_profiles()

    top_col, back_col = st.columns([5, 1])
    with top_col:
        st.markdown(f"### Game #{session.room_id}")
    with back_col:
        if st.button("🔙 Back"):
            loop.run(session.close())
            st.session_state.board = None
            st.session_state.page = "setup"
            st.rerun()

    @st.fragment(run_every=1)
    def board_view():
        snap = session.snapshot()
        room = snap["room"]
        turn = snap["turn"]
        board_col, side_col = st.columns([3, 1])

        with board_col:
            html = "<div style='display:grid;grid-template-columns:repeat(10,1fr);gap:1px;max-width:640px;'>"
            for index, cell in enumerate(snaked_cells()):
                bg = "#2c1810" if index % 2 == 0 else "#3b2010"
                if is_snake(cell):
                    bg = "#8B0000"
                if is_ladder(cell):
                    bg = "#006400"
                tokens = "".join(
                    f"<span title='{p}' style='font-size:18px;'>{'🟡' if p == turn.highlighted else '⚪'}</span>"
                    for p, pos in snap["positions"].items() if pos == cell)
                html += (f"<div style='background:{bg};aspect-ratio:1;position:relative;color:#ccc;'>"
                         f"<span style='position:absolute;top:0;left:3px;font-size:9px;'>{cell}</span>"
                         f"<div style='display:flex;flex-wrap:wrap;justify-content:center;padding-top:12px;'>{tokens}</div></div>")
            html += "</div>"
            st.markdown(html, unsafe_allow_html=True)

        with side_col:
            if room is None:
                st.warning("⚠️ Waiting for room data...")
                return
            st.markdown(f"**Next slot in:** {snap['countdown'] or '-'}")
            st.markdown(f"**{turn.prompt}**")

            for player in snap["players"]:
                info = snap["player_info"].get(player)
                name = profiles.display_name(player) if settings.profile_api_key else short_address(player)
                marker = "👉 " if player == turn.highlighted else ""
                last = info.last_roll_value if info and info.last_roll_value else "-"
                st.markdown(f"{marker}{name} · cell {snap['positions'].get(player, '-')} · last roll {last}")

            face = "🎲" if snap["is_rolling"] else f"🎲 {snap['dice_value']}"
            st.markdown(f"## {face}")
            if snap["previous_roll"]:
                st.caption(f"Your previous roll: {snap['previous_roll']}")
            if st.button("Roll", type="primary", disabled=not snap["can_roll"], use_container_width=True):
                loop.submit(session.roll()).add_done_callback(report_failure)
            if st.button("Use extra roll", disabled=not snap["can_roll"], use_container_width=True):
                loop.submit(session.extra_roll()).add_done_callback(report_failure)
            if snap["phase"] is RollPhase.ERROR:
                st.error(snap["error"])

            if not room.started and not snap["has_joined"]:
                if st.button("🤝 Join game", disabled=session.flow.busy):
                    loop.submit(session.participate()).add_done_callback(report_failure)
                if snap["flow_error"]:
                    st.error(snap["flow_error"])

            if room.has_winner:
                st.success(f"🎉 Winner: {short_address(room.winner)}")

    board_view()
