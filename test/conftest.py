import os

# plots are written to files only
os.environ.setdefault("MPLBACKEND", "Agg")
