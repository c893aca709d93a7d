"""
clientlib_atlas.graph — Category graph structures and the visible-subgraph layout.

Modules:
    category_index  — category → clientlibs, usage counts, used-category set.
    relation_graph  — forward / reverse adjacency over categories.
    view            — visible subgraph selection + deterministic layered layout.

All structures are built once per inventory and never mutated afterwards.
Edge kinds: depends (required at runtime), embeds (inlined at build time).
"""
