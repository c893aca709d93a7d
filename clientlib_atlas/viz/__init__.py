"""
clientlib_atlas.viz — Visual surfaces.

Modules:
    plotly_graph — interactive Plotly figure of a laid-out GraphView.
    figures      — static matplotlib PNGs (graph view, top usages, impact).
    dashboard    — Streamlit dashboard over one AtlasSession.

plotly and streamlit are optional at import time; renderers raise ImportError
with an install hint when the library is missing.
"""
