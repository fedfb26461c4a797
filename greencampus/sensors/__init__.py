"""Live sensor engine.

Modules
───────
  formulas  — energy / carbon / cost / wastage / green-score arithmetic
  devices   — zone map and the simulated fleet from sensors.yaml
  ticker    — periodic scheduler (background thread or manual)
  engine    — SensorEngine: ingest, simulation, aggregates, campus totals
  boundary  — packet validation, ingest handling, JSONL persistence
  cli       — argparse entry-point
"""
