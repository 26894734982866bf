"""dopamine-economy — Coin rewards for deliberate coding."""
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("dopamine-economy")
except PackageNotFoundError:
    __version__ = "0.0.0"
