import sys
from pathlib import Path

# Ensure repo root is importable (works regardless of cwd)
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import streamlit as st

st.set_page_config(page_title="Polyglot Chat", page_icon="💬", layout="wide")
st.title("Polyglot Chat")
st.write("Use the sidebar to open **Chat** or **Saved Chats**.")
st.caption("Replies come from the configured Gemini or Ollama model.")
