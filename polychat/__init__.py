"""polychat

Multilingual chat orchestration: history, search augmentation, and
interchangeable language-model backends.
"""

__version__ = "0.1.0"
