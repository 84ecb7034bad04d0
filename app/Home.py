import streamlit as st

st.set_page_config(page_title="Tool Chat", page_icon="💬", layout="wide")

st.title("💬 Tool Chat")
st.subheader("A Streamlit App")
st.write(
    """
Chat with an LLM that can search the web and summarize text before it answers.
Tool calls run in parallel, their results are fed back to the model, and the
final answer streams in as it is generated.
"""
)

st.info("Go to **Chat** in the left sidebar to start a conversation.")
