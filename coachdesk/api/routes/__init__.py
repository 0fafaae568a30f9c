"""Route modules, one per resource group. Mounted in coachdesk.main."""
