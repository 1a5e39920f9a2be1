# finance_tracker/loaders/__init__.py
from importlib import import_module
from pathlib import Path


def get_loader(name, config):
    loader_path = config['loaders'][name]
    module_name, cls_name = loader_path.rsplit('.', 1)
    mod = import_module(module_name)
    return getattr(mod, cls_name)()


def loader_for_file(file_path, config):
    """Pick a loader by file extension (``.csv`` -> ``csv``)."""
    suffix = Path(file_path).suffix.lower().lstrip('.')
    if suffix not in config['loaders']:
        raise ValueError(f"No loader configured for '.{suffix}' files")
    return get_loader(suffix, config)
