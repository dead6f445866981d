"""
ClassLens package
=================

Turns a studio's payroll export (a ZIP holding a per-visit CSV) into
aggregated class-slot statistics that can be filtered, sorted, pivoted and
exported.

- The CLI entry point is in `classlens/cli.py`.
- The session (view state, undo/redo, analytics) is in `classlens/engine.py`.
- Archive ingestion is in `classlens/loader.py` and `classlens/aggregate.py`.
"""

__version__ = '0.1.0'
