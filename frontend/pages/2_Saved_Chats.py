import sys, os
from pathlib import Path
ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import streamlit as st
import pandas as pd
from frontend.client import fetch_logs, list_saved, load_saved

st.set_page_config(page_title="Saved Chats", page_icon="🗂️", layout="wide")

st.title("🗂️ Saved Chats")
backend_url = st.text_input("Backend URL", os.getenv("BACKEND_URL", "http://localhost:8000"))

saved, error = list_saved(backend_url)
if error:
    st.error(error)
elif not saved:
    st.info("No saved chats yet. Use **Save chat** on the Chat page.")
else:
    df = pd.DataFrame(saved)
    df["savedAt"] = pd.to_datetime(df["savedAt"], utc=True, errors="coerce")
    st.dataframe(df[["chatName", "savedAt", "messageCount", "filename"]], use_container_width=True)

    choice = st.selectbox("Open chat", [s["filename"] for s in saved])
    if st.button("Load"):
        chat, load_error = load_saved(backend_url, choice)
        if load_error:
            st.error(load_error)
        else:
            st.caption(f"{chat.get('chatName')} · saved {chat.get('savedAt')}")
            for m in chat.get("messages", []):
                st.chat_message("user" if m["type"] == "user" else "assistant").markdown(m["content"])

st.divider()
st.subheader("Server events")
logs, log_error = fetch_logs(backend_url)
if log_error:
    st.warning(log_error)
if logs:
    st.dataframe(pd.json_normalize(logs), use_container_width=True)
elif not log_error:
    st.info("No log entries returned.")
