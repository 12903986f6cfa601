# Run from project root: streamlit run ecolab/ui.py
# UI talks to the backend API (POST /chat). The agent is stateless; the transcript lives only in this page.

import json
import os
import uuid

import requests
import streamlit as st

API_BASE = os.environ.get("API_BASE", "http://localhost:8787")
APOLOGY = "Sorry, I couldn't reach the air-quality assistant. Please try again in a moment."

st.title("EcoLab Air-Quality Assistant")

try:
    r = requests.get(f"{API_BASE}/sources", timeout=10)
    data = r.json() if r.ok else {}
    sources = data.get("sources") or []
    if sources:
        st.caption(f"Documents in knowledge base ({data.get('chunks', 0)} chunks): " + ", ".join(sources))
    else:
        st.caption("No documents in knowledge base yet. Run `ecolab-ingest ./docs`.")
except (requests.RequestException, ValueError):
    st.caption("Backend not reachable. Start the API first.")

# Each turn: {id, role, content, tool?, passages?}
if "turns" not in st.session_state:
    st.session_state.turns = []
if st.button("New chat", key="new_chat"):
    st.session_state.turns = []
    st.rerun()


def render_turn(turn: dict) -> None:
    with st.chat_message(turn["role"]):
        st.markdown(turn["content"])
        tool = turn.get("tool")
        if tool:
            st.caption(f"Tool: {tool.get('name')} {json.dumps(tool.get('args') or {})}")
        passages = turn.get("passages") or []
        if passages:
            with st.expander(f"Sources ({len(passages)})"):
                for i, p in enumerate(passages, 1):
                    source = (p.get("metadata") or {}).get("source", "")
                    st.markdown(f"**Source {i}** {source}")
                    st.text(p.get("text", ""))


for turn in st.session_state.turns:
    render_turn(turn)

if prompt := st.chat_input("Ask about air quality, pollutants, or current readings near a place"):
    user_turn = {"id": str(uuid.uuid4()), "role": "user", "content": prompt}
    st.session_state.turns.append(user_turn)
    render_turn(user_turn)
    with st.spinner("Thinking..."):
        try:
            r = requests.post(f"{API_BASE}/chat", json={"message": prompt}, timeout=90)
            r.raise_for_status()
            data = r.json()
            turn = {
                "id": str(uuid.uuid4()),
                "role": "assistant",
                "content": data.get("answer") or "No answer.",
                "tool": data.get("tool"),
                "passages": data.get("passages") or [],
            }
        except (requests.RequestException, ValueError):
            turn = {"id": str(uuid.uuid4()), "role": "assistant", "content": APOLOGY}
    st.session_state.turns.append(turn)
    render_turn(turn)
