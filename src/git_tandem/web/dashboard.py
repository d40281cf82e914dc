"""Streamlit dashboard for git-tandem, backed by the FastAPI app."""
from __future__ import annotations

import sys

import httpx
import plotly.graph_objects as go
import streamlit as st

# ── Configuration ───────────────────────────────────────────────────

API_URL = "http://localhost:8000"
for arg in sys.argv:
    if arg.startswith("--api-url="):
        API_URL = arg.split("=", 1)[1]

st.set_page_config(page_title="git-tandem", layout="wide")

STRENGTH_COLORS = {
    "Critical": "#d62728",
    "Strong": "#ff7f0e",
    "Moderate": "#1f77b4",
    "Weak": "#7f7f7f",
}


# ── Data Fetching ───────────────────────────────────────────────────

@st.cache_data(ttl=60)
def fetch(endpoint: str, params: tuple | None = None) -> list | dict | None:
    try:
        resp = httpx.get(f"{API_URL}{endpoint}", params=list(params or ()), timeout=120)
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        return resp.json()
    except httpx.ConnectError:
        st.error(f"Cannot connect to API at {API_URL}. Is the server running?")
        st.stop()
    except httpx.HTTPStatusError as e:
        st.error(f"API error: {e.response.json().get('detail', e.response.text)}")
        st.stop()


# ── Sidebar ─────────────────────────────────────────────────────────

summary = fetch("/api/summary")
st.sidebar.title("git-tandem")
st.sidebar.caption(summary["repo_path"])

branches = fetch("/api/branches") or []
default_idx = branches.index(summary["current_branch"]) if summary["current_branch"] in branches else 0
branch = st.sidebar.selectbox("Branch", branches, index=default_idx) if branches else ""
max_commits = st.sidebar.number_input("Max commits (0 = all)", min_value=0, value=500, step=100)
include_merges = st.sidebar.checkbox("Include merge commits", value=False)
ignore_text = st.sidebar.text_area(
    "Ignore patterns (one per line)", value="*.md\n*.txt\n*.json\n*.yaml\n*.yml",
)
ignore = [line.strip() for line in ignore_text.splitlines() if line.strip()]

common = (
    ("branch", branch),
    ("max_commits", int(max_commits)),
    ("include_merges", str(include_merges).lower()),
)

# ── Tab Layout ──────────────────────────────────────────────────────

tabs = st.tabs(["Overview", "Commits", "Coupling"])

history = fetch("/api/commits", params=common)

# ── Tab 1: Overview ─────────────────────────────────────────────────

with tabs[0]:
    st.header("Overview")

    s1, s2, s3, s4 = st.columns(4)
    s1.metric("Total Commits", summary["commit_count"])
    s2.metric("Loaded", history["total_commits"])
    s3.metric("Merges", history["merge_commits"])
    s4.metric("Contributors", len(history["contributors"]))

    t1, t2, t3 = st.columns(3)
    t1.metric("Files Changed", history["totals"]["files_changed"])
    t2.metric("Lines Added", history["totals"]["insertions"])
    t3.metric("Lines Deleted", history["totals"]["deletions"])

    contributors = history["contributors"][:15]
    if contributors:
        fig = go.Figure(go.Bar(
            x=[c["commit_count"] for c in contributors],
            y=[c["name"] for c in contributors],
            orientation="h",
        ))
        fig.update_layout(
            title="Top Contributors", height=400,
            yaxis={"autorange": "reversed"},
            margin=dict(t=60, b=20, l=30, r=30),
        )
        st.plotly_chart(fig, use_container_width=True)

    if history["issues"]:
        st.warning(f"{len(history['issues'])} malformed item(s) skipped while decoding.")

# ── Tab 2: Commits ──────────────────────────────────────────────────

with tabs[1]:
    st.header("Commits")
    rows = [
        {
            "id": c["short_id"],
            "date": (c["timestamp"] or "")[:19],
            "author": c["author"]["name"],
            "subject": c["subject"],
            "files": c["stats"]["files_changed"],
            "+": c["stats"]["insertions"],
            "-": c["stats"]["deletions"],
            "merge": c["is_merge"],
        }
        for c in history["commits"]
    ]
    if rows:
        st.dataframe(rows, use_container_width=True)
    else:
        st.info("No commits match the filters.")

# ── Tab 3: Coupling ─────────────────────────────────────────────────

with tabs[2]:
    st.header("File Coupling")
    coupling = fetch(
        "/api/coupling",
        # The text area is the full pattern list; an empty one means no ignores.
        params=common + (("ignore_defaults", "false"),) + tuple(("ignore", p) for p in ignore),
    )
    pairs = coupling["pairs"] if coupling else []
    if not pairs:
        st.info("No file pair changed together 3 or more times.")
    else:
        top = pairs[:20]
        fig = go.Figure(go.Bar(
            x=[p["score"] for p in top],
            y=[f"{p['file_a']} ↔ {p['file_b']}" for p in top],
            orientation="h",
            marker_color=[STRENGTH_COLORS[p["strength"]] for p in top],
            text=[p["co_changes"] for p in top],
        ))
        fig.update_layout(
            title="Strongest Coupled Pairs", height=600,
            xaxis={"range": [0, 1]}, yaxis={"autorange": "reversed"},
            margin=dict(t=60, b=20, l=30, r=30),
        )
        st.plotly_chart(fig, use_container_width=True)
        st.dataframe(pairs, use_container_width=True)
