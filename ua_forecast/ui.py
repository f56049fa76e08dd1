from __future__ import annotations

import streamlit as st


def inject_brand_styles() -> None:
    st.markdown(
        """
        <style>
        :root { --brand-gold: #D4AF37; --brand-gold-dark: #9C7C1B; --brand-bg: #0A0A0A; --brand-text: #F5F5F5; }
        html, body, .stApp { font-family: Helvetica, Arial, sans-serif; color: var(--brand-text); }
        .stApp { background-color: var(--brand-bg) !important; }
        h1, h2, h3, h4, h5, h6 { color: var(--brand-text); }
        .stButton>button, .stDownloadButton>button {
            background: linear-gradient(180deg, #FBE08B 0%, #D4AF37 60%, #9C7C1B 100%);
            color: #111; border: 0; border-radius: 6px;
        }
        .kpi-card { border: 1px solid #2a2a2a; border-radius: 12px; padding: 12px 16px; background: #131313; }
        .kpi-label { font-size: 11px; text-transform: uppercase; letter-spacing: 0.14em; color: #a3a3a3; }
        .kpi-value { font-size: 24px; font-weight: 700; color: var(--brand-gold); }
        </style>
        """,
        unsafe_allow_html=True,
    )


def render_brand_header(title: str = "UA Cohort Forecaster", subtitle: str = "3-Year Forecast") -> None:
    st.markdown(
        "<div style='display:flex;align-items:center;gap:12px;padding-top:8px;'>"
        "<div style='width:32px;height:32px;border-radius:12px;background:#D4AF37;'></div>"
        f"<h1 style='margin:0;'>{title} <span style='color:#a3a3a3;font-size:0.6em;'>{subtitle}</span></h1>"
        "</div>",
        unsafe_allow_html=True,
    )
    st.divider()


def format_currency(value: float) -> str:
    return f"${value:,.0f}"


def format_pct(value: float) -> str:
    return f"{value * 100:,.1f}%"


def render_kpi_cards(items: list[tuple[str, str]]) -> None:
    cols = st.columns(len(items))
    for col, (label, value) in zip(cols, items):
        with col:
            st.markdown(
                f"<div class='kpi-card'><div class='kpi-label'>{label}</div><div class='kpi-value'>{value}</div></div>",
                unsafe_allow_html=True,
            )
