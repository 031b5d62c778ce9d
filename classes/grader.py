from collections import namedtuple

from utils.errors import InvalidSubmission

GradeResult = namedtuple("GradeResult", ["is_correct", "points_awarded"])
SCALARS = (int, float, str)


class Selection:
    """What a taker submitted for one question: option ids or free text."""

    def __init__(self, option_ids=None, text=None):
        self.option_ids = list(dict.fromkeys(option_ids or []))
        self.text = text

    @classmethod
    def from_payload(cls, data):
        """Accepts ``option_id``, ``option_ids`` or ``answer_text`` keys.

        Raises InvalidSubmission for payloads that are not a flat list of ids;
        whether the ids are integers is left to the question's validation.
        """
        option_ids = data.get("option_ids")
        if option_ids is None and data.get("option_id") is not None:
            option_ids = [data.get("option_id")]

        if option_ids is not None and not isinstance(option_ids, list):
            raise InvalidSubmission("option_ids must be a list.")
        if any(not isinstance(option_id, SCALARS) for option_id in option_ids or []):
            raise InvalidSubmission("Option ids must be integers.")
        return cls(option_ids=option_ids, text=data.get("answer_text"))

    def __repr__(self):
        return f"<Selection options={self.option_ids} text={self.text!r}>"


def normalize_text(value):
    return (value or "").strip().casefold()


class AnswerGrader:
    """Decides correctness and points for a single submission.

    No partial credit anywhere: a multi-select answer is right only when the
    chosen set equals the correct set exactly.
    """

    @staticmethod
    def grade(question, selection):
        if question.type == "identification":
            is_correct = AnswerGrader._grade_text(question.correct_answer, selection.text)
        else:
            is_correct = AnswerGrader._grade_options(question.options, selection.option_ids)
        return GradeResult(is_correct, int(question.points) if is_correct else 0)

    @staticmethod
    def _grade_options(options, selected_ids):
        correct_ids = sorted(option.id for option in options if option.is_correct)
        chosen = sorted(set(selected_ids))
        return correct_ids == chosen

    @staticmethod
    def _grade_text(canonical, submitted):
        if canonical is None or not normalize_text(canonical):
            return False
        return normalize_text(submitted) == normalize_text(canonical)
