# finance_tracker/outputs/__init__.py
from importlib import import_module


def get_output(name, config):
    """Instantiate the report writer configured under ``output_modules[name]``."""
    modules = config.get('output_modules', {})
    if name not in modules:
        raise ValueError(f"No output module configured for '{name}'")
    module_name, cls_name = modules[name].rsplit('.', 1)
    writer_cls = getattr(import_module(module_name), cls_name)
    return writer_cls(config)
