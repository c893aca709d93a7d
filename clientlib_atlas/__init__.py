"""
clientlib_atlas — Dependency and impact intelligence for AEM clientlib inventories.

Reads the pre-computed clientlib inventory produced by the scanning servlet and
answers two questions for the dashboard:

- Impact: if I change this clientlib, which other categories break
  (directly, or by cascade)? (clientlib_atlas.analysis.impact)
- Structure: what does the category dependency graph around the categories
  that templates and dialogs actually use look like? (clientlib_atlas.graph.view)

Everything else in the package is presentation over the same inventory:
tables, usages, recommendations, the Streamlit dashboard and the FastAPI API.
"""

__version__ = "0.1.0"
