# biboop/__init__.py
from pathlib import Path
from dotenv import load_dotenv

# Load the project-root .env BEFORE settings are read from the environment
load_dotenv(dotenv_path=Path(__file__).resolve().parents[1] / ".env")

__version__ = "0.1.0"
