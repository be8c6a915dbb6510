"""Release preparation and publishing.

- version: release version validation
- guard: repository preconditions
- branch: release branch, commit and push
- hook: pre-release command
- changelog: changeset lookup
- coordinator: ``craft release`` state machine
- publish: ``craft publish`` orchestration
"""
