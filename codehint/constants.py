"""
Constants and default configuration for Codehint.
"""

from pathlib import Path

CONFIG_FILES = [
    '.codehint.yaml',
    '.codehint.yml',
    '.codehint.toml',
    '.codehint.json',
]

DATA_DIR = Path.home() / '.codehint'

DEFAULT_PROFILE_NAME = 'default'

ANALYZABLE_EXTENSIONS = [
    'java', 'kt', 'scala', 'groovy', 'js', 'ts', 'py', 'cpp', 'c', 'h',
]

DEFAULT_CONFIG = {
    'analysis': {
        'debounce_interval_ms': 5000,
        'emit_placeholder': False,
        'max_file_lines': 500,
        'max_method_lines': 50,
        'max_method_complexity': 10,
        'max_line_length': 120,
        'extensions': list(ANALYZABLE_EXTENSIONS),
    },
    'learning': {
        'profile_name': DEFAULT_PROFILE_NAME,
        'store_backend': 'sqlite',
        'profile_path': None,
    },
    'logging': {
        'level': 'INFO',
    },
}
