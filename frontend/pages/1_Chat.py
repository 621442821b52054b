import os
import sys
from pathlib import Path
ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import streamlit as st
from backend.core.llm import LANGUAGES
from frontend.client import cancel_chat, new_request_id, new_session_id, save_chat, send_chat

st.set_page_config(page_title="Chat", page_icon="💬", layout="wide")

if "sid" not in st.session_state:
    st.session_state.sid = new_session_id()
if "chat" not in st.session_state:
    st.session_state.chat = []
if "pending" not in st.session_state:
    st.session_state.pending = None
if "last_rid" not in st.session_state:
    st.session_state.last_rid = None

with st.sidebar:
    backend_url = st.text_input("Backend URL", os.getenv("BACKEND_URL", "http://localhost:8000"))
    language = st.selectbox("Reply language", list(LANGUAGES), index=0)
    auto_analyze = st.toggle("Suggest follow-up questions", value=False)
    uploads = st.file_uploader(
        "Attach files",
        type=["jpeg", "jpg", "png", "gif", "webp", "pdf", "doc", "docx", "txt"],
        accept_multiple_files=True,
    )
    st.caption(f"Session: `{st.session_state.sid}`")
    if st.session_state.last_rid and st.button("Cancel last request"):
        result, error = cancel_chat(backend_url, st.session_state.last_rid)
        if error:
            st.error(error)
        else:
            st.info(result.get("message", ""))
    st.divider()
    chat_name = st.text_input("Chat name", "")
    if st.button("Save chat"):
        result, error = save_chat(backend_url, st.session_state.sid, chat_name)
        if error:
            st.warning(error)
        else:
            st.success(f"Saved as {result['filename']}")
    if st.button("New chat"):
        st.session_state.sid = new_session_id()
        st.session_state.chat = []
        st.rerun()

st.title("💬 Chat")

for n, m in enumerate(st.session_state.chat):
    with st.chat_message(m["role"]):
        st.markdown(m["text"])
        for i, q in enumerate(m.get("suggestions") or []):
            if st.button(q, key=f"sugg-{n}-{i}"):
                st.session_state.pending = q
                st.rerun()

msg = st.chat_input("Type a message...") or st.session_state.pending
if msg:
    st.session_state.pending = None
    files = [(f.name, f.getvalue(), f.type or "application/octet-stream") for f in uploads or []]
    st.session_state.chat.append({"role": "user", "text": msg})
    rid = new_request_id()
    st.session_state.last_rid = rid
    with st.spinner("Thinking..."):
        data, error = send_chat(
            backend_url, msg, st.session_state.sid, rid, language, auto_analyze=auto_analyze, files=files
        )
    if error:
        st.session_state.chat.append({"role": "assistant", "text": f"⚠️ {error}"})
    else:
        st.session_state.chat.append(
            {"role": "assistant", "text": data.get("response", ""), "suggestions": data.get("suggestions") or []}
        )
    st.rerun()
