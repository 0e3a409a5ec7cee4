"""Print fund utilization summaries (see mplads.cli.summary)."""
from mplads.cli.summary import main

if __name__ == "__main__":
    main()
