"""GangRun print-shop pricing and configuration engine."""
