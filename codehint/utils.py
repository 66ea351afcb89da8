"""
Utility functions for Codehint.
"""

import logging
from pathlib import Path
from typing import Dict, Any, Optional
import colorama
from rich.logging import RichHandler

# Initialize colorama for cross-platform color support
colorama.init()


# Configure logging with Rich handler
def setup_logger(name: str = "codehint", level: str = "INFO") -> logging.Logger:
    """Set up a logger with Rich formatting."""
    logger = logging.getLogger(name)
    
    # Clear existing handlers
    logger.handlers = []
    
    handler = RichHandler(
        show_time=True,
        show_path=False,
        markup=True,
        rich_tracebacks=True,
        tracebacks_show_locals=False
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    
    return logger


# Global logger instance
logger = setup_logger()


def merge_dicts(base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge two dictionaries."""
    result = base.copy()
    
    for key, value in update.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_dicts(result[key], value)
        else:
            result[key] = value
    
    return result


def ensure_directory(path: Path) -> Path:
    """Ensure a directory exists."""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def is_binary_file(path: Path) -> bool:
    """Check if a file is binary."""
    try:
        with open(path, 'rb') as f:
            chunk = f.read(1024)
        
        # Check for null bytes
        if b'\x00' in chunk:
            return True
        
        # Check if file is mostly printable
        text_chars = bytearray({7, 8, 9, 10, 12, 13, 27} | set(range(0x20, 0x100)))
        non_text = chunk.translate(None, text_chars)
        
        return len(non_text) > len(chunk) * 0.3
    except OSError:
        return True


def read_source(path: Path) -> Optional[str]:
    """Read a source file as text, returning None when it cannot be read."""
    path = Path(path)
    if is_binary_file(path):
        logger.debug(f"Skipping binary file: {path}")
        return None
    
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Could not read {path}: {e}")
        return None
