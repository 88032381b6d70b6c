import importlib, os
from .collaborators import Explainer

def load_explainer() -> Explainer:
    modpath = os.getenv("EXPLAINER_MODULE")
    if not modpath:
        from wealthpulse.tools.narrative import BedrockExplainer
        return BedrockExplainer()
    mod, factory = modpath.split(":")
    return getattr(importlib.import_module(mod), factory)()
