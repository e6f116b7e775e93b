#!/usr/bin/env python3
"""
Run the Tasmota Manager API Server

This script serves as an entry point for the API service
"""
import sys
from pathlib import Path

# Add the src directory to the Python path
project_root = Path(__file__).parent.parent.absolute()
sys.path.insert(0, str(project_root / "src"))

from tasmota_manager.interfaces.api.server import run_server

if __name__ == "__main__":
    run_server()
