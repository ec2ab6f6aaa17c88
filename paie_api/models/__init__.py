"""Importing a model module registers its tables on ``db.metadata``."""
import importlib
import pkgutil


def load_all():
    """Import every model module, subpackages included; returns their names."""
    loaded = []
    for info in pkgutil.walk_packages(__path__, prefix=f"{__name__}."):
        importlib.import_module(info.name)
        loaded.append(info.name)
    return loaded
