"""Read-only views for the dashboard.

- queries: latest sessions, detection results, plot catalog, statistics
"""

from isodash.views.queries import AnalysisQueries, EXPORTABLE_VIEWS

__all__ = ["AnalysisQueries", "EXPORTABLE_VIEWS"]
