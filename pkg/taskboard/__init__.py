# taskboard: client for the task-management REST API
#
# Components:
#   schema.py        - Data model (Task, SubTask, Project) and wire normalization
#   api.py           - REST client (requests)
#   store.py         - Local task/project store, error slot
#   mutations.py     - Revision tracking for optimistic completion
#   analytics.py     - Trend, priority, project, streak and productivity stats
#   calendar_grid.py - Tasks grouped by due date, month grid
#   views.py         - List filtering/sorting, dashboard and project summaries
#   auth.py          - Login/register session
#   snapshot.py      - Versioned local state file
#   config.py        - YAML + environment configuration
#   cli.py           - Command-line front end
