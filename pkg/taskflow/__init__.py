# TaskFlow: local job tracker with dashboard, kanban and list views
#
# Components:
#   schema.py      - Data model (JobRecord, JobStatus, JobPriority, ViewMode)
#   store.py       - SQLite record store and storage error taxonomy
#   state.py       - Application state container (snapshot, view, filter)
#   render.py      - View renderer: filter, dashboard, kanban, list, stats
#   controller.py  - Command objects and the interaction controller
#   config.py      - YAML-backed runtime configuration
