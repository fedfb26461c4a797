"""Batch dataset pipeline.

Modules
───────
  parser    — CSV text → CSVRow list, per-row validation
  scoring   — statistics, zone scores, leaderboard buckets (pandas)
  pipeline  — BatchPipeline: dataset lifecycle and queries
  reporter  — JSON / CSV writers
  cli       — argparse entry-point
"""
