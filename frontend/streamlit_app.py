"""Streamlit chat page for the growth quiz."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

import streamlit as st

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from src.config import settings
from src.services.archive import export_filename
from src.services.proxy_client import ProxyClient
from src.services.questions import load_question_catalog
from src.session import QuizSession, QuizState

QUESTIONS_PATH = ROOT_DIR / settings.QUESTIONS_PATH


def init_state() -> None:
    """Create the quiz session once per browser session."""
    if "quiz" in st.session_state:
        return
    catalog = load_question_catalog(QUESTIONS_PATH)
    st.session_state["quiz"] = QuizSession(
        catalog,
        ProxyClient(settings.PROXY_URL),
        model=settings.OPENAI_MODEL,
        quiz_name=settings.QUIZ_NAME,
    )
    st.session_state.setdefault("feedback", None)


def render_messages(session: QuizSession) -> None:
    if not session.messages:
        st.info("Start the quiz to see the first question.")
        return
    for message in session.messages:
        with st.chat_message(message.role):
            if message.type == "question":
                st.markdown(f"**Question {message.question_id + 1} of {len(session.catalog)}**")
            st.markdown(message.content)


st.set_page_config(page_title=settings.QUIZ_NAME)
init_state()
quiz: QuizSession = st.session_state["quiz"]

st.title(settings.QUIZ_NAME)

header_cols = st.columns(3)
with header_cols[0]:
    if st.button("Start quiz", disabled=quiz.state is not QuizState.IDLE):
        quiz.start()
        st.rerun()
with header_cols[1]:
    if st.button("Clear Conversation"):
        quiz.reset()
        st.session_state["feedback"] = "Conversation cleared"
        st.rerun()
with header_cols[2]:
    clicked = st.download_button(
        "Export Data",
        data=json.dumps(quiz.export(), indent=2),
        file_name=export_filename(settings.QUIZ_NAME),
        mime="application/json",
    )
    if clicked:
        st.session_state["feedback"] = "Data exported successfully"

if quiz.state is QuizState.PRESENTING_QUESTION:
    if st.button("Just chat instead"):
        quiz.diverge()
        st.rerun()

render_messages(quiz)

if quiz.error:
    err_cols = st.columns([5, 1])
    err_cols[0].error(quiz.error.display_message())
    if err_cols[1].button("Dismiss"):
        quiz.dismiss_error()
        st.rerun()

if st.session_state.get("feedback"):
    st.caption(st.session_state["feedback"])
    st.session_state["feedback"] = None

# Streamlit runs one script pass per input, so a send cannot be re-triggered
# while it is in progress; the session's own single-flight guard still applies.
text = st.chat_input("Type your response...", disabled=quiz.state is QuizState.AWAITING_RESPONSE)
if text:
    quiz.set_input(text)
    with st.spinner("Sending..."):
        asyncio.run(quiz.submit())
    st.rerun()
