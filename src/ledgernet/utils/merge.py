import copy
from typing import Any, Dict


def deep_merge(parent: Dict, child: Dict) -> Dict:
    """
    Recursively merges a child dictionary into a copy of a parent dictionary.
        - Dictionaries are merged recursively.
        - Lists are merged by extending unique items.
        - All other types from the child overwrite the parent.
    """
    merged = copy.deepcopy(parent)
    for key, child_value in child.items():
        if key not in merged:
            merged[key] = copy.deepcopy(child_value)
            continue

        parent_value = merged[key]
        if isinstance(parent_value, dict) and isinstance(child_value, dict):
            merged[key] = deep_merge(parent_value, child_value)
        elif isinstance(parent_value, list) and isinstance(child_value, list):
            seen = {str(item) for item in parent_value}
            for item in child_value:
                if str(item) not in seen:
                    parent_value.append(copy.deepcopy(item))
                    seen.add(str(item))
        else:
            merged[key] = copy.deepcopy(child_value)

    return merged


def render_flags(flags: Dict[str, Any]) -> list:
    """
    Renders `{"key": value}` as command line flags.

    `True`, `None` and `""` produce a bare `--key`; `False` drops the flag.
    """
    args = []
    for key, value in flags.items():
        if value is False:
            continue
        flag = key if key.startswith("-") else f"--{key}"
        if value is True or value is None or value == "":
            args.append(flag)
        else:
            args.extend([flag, str(value)])
    return args
