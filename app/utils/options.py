"""
Question option normalization

Options arrive either as a keyed map (``{"A": "Paris", "B": "Rome"}`` plus
``correct_option="A"``) or as a list of ``{"text", "is_correct"}`` records.
Both become one ordered list of labelled options.
"""

import string
from typing import Any, Dict, List, Optional, Union

MIN_OPTIONS = 2
MAX_OPTIONS = 6
NOT_ATTEMPTED = "not_attempted"

LABELS = string.ascii_uppercase[:MAX_OPTIONS]


def _from_mapping(options: Dict[str, Any], correct_option: Optional[str]) -> List[Dict[str, Any]]:
    if not correct_option:
        raise ValueError("correct_option is required when options are given as a map")

    keyed = {}
    for key, text in options.items():
        label = str(key).strip().upper()
        if label not in LABELS:
            raise ValueError(f"Invalid option label: {key}")
        if label in keyed:
            raise ValueError(f"Duplicate option label: {key}")
        keyed[label] = text

    correct = str(correct_option).strip().upper()
    if correct not in keyed:
        raise ValueError(f"correct_option {correct_option} does not match any option")

    return [
        {"label": label, "text": keyed[label], "is_correct": label == correct}
        for label in sorted(keyed)
    ]


def _from_list(options: List[Any]) -> List[Dict[str, Any]]:
    normalized = []
    for position, option in enumerate(options):
        if isinstance(option, dict):
            text = option.get("text")
            is_correct = bool(option.get("is_correct", option.get("isCorrect", False)))
        else:
            text = getattr(option, "text", None)
            is_correct = bool(getattr(option, "is_correct", False))
        normalized.append({"label": LABELS[position], "text": text, "is_correct": is_correct})
    return normalized


def normalize_options(
    options: Union[Dict[str, Any], List[Any]], correct_option: Optional[str] = None
) -> List[Dict[str, Any]]:
    """
    Normalize either option shape to ``[{"label", "text", "is_correct"}]``

    Raises:
        ValueError: on a malformed option set
    """
    if not (MIN_OPTIONS <= len(options or []) <= MAX_OPTIONS):
        raise ValueError(f"Questions must have {MIN_OPTIONS}-{MAX_OPTIONS} options")

    if isinstance(options, dict):
        normalized = _from_mapping(options, correct_option)
    else:
        normalized = _from_list(options)
        if correct_option:
            wanted = str(correct_option).strip().upper()
            for option in normalized:
                option["is_correct"] = option["label"] == wanted

    for option in normalized:
        if not isinstance(option["text"], str) or not option["text"].strip():
            raise ValueError(f"Option {option['label']} has no text")
        option["text"] = option["text"].strip()

    if not any(option["is_correct"] for option in normalized):
        raise ValueError("At least one option must be correct")

    return normalized


def is_correct_selection(options: List[Any], selected: Optional[str]) -> bool:
    """
    Whether ``selected`` picks a correct option

    ``selected`` may be an option label or the option text; the
    ``not_attempted`` marker and blanks are always incorrect.
    """
    if not selected or selected == NOT_ATTEMPTED:
        return False
    for option in options:
        if selected == option.label or selected == option.text:
            return bool(option.is_correct)
    return False
