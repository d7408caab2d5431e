"""
Standalone entry point that starts the TidalCycles server and opens
its native window.
Run via:  python run_tidal_gui.py
"""

from tidal_gui.main import main

main()
