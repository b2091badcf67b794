"""
Resource curation.

- Dashboard: vetted catalog grouped by category, the caller's pins and submissions
- Pin/unpin toggle per (user, resource)
- Custom resources owned by their submitter
- Vetted catalog CRUD for managers (/admin)
"""
