"""
clientlib_atlas.analysis — Questions asked of the category graph.

Modules:
    impact  — direct / cascading dependents of a clientlib, its own requirements,
              and the re-test plan derived from them.
    search  — clientlib search and category suggestion ranking.

All functions are pure and read the structures built by clientlib_atlas.graph.
"""
