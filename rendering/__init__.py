"""
Rendering package - turns decoded traces into images.

Modules:
    types           - render request/result types and wire-format parsing
    colormap        - amplitude to RGB mappings
    vd_renderer     - variable density rasterization
    wiggle_renderer - wiggle line/fill rasterization
    pipeline        - render_traces entry point and PNG encoding
"""
