#main.py

"""
treewatch - recursive filesystem change notification

Run from a checkout without installing: ``python main.py ~/projects``
"""
import sys
from pathlib import Path

# Add project directory to path
sys.path.insert(0, str(Path(__file__).parent))

from treewatch.cli import main


if __name__ == "__main__":
    sys.exit(main())
