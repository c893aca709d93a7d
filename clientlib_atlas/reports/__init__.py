"""
clientlib_atlas.reports — Tables and recommendations built from an inventory.

Modules:
    tables           — pandas DataFrames for the clientlibs table, the usages
                       panel and the summary strip.
    recommendations  — prioritised action list derived from alerts and usages,
                       with a Markdown export.
"""
