"""
clientlib_atlas.api — FastAPI read API.

Modules:
    endpoints — create_app(inventory_loader): summary, clientlibs, usages,
                impact, dependencies, graph, alerts and recommendations.
"""
