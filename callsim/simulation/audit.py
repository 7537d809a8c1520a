"""
Script-coverage audit: which call-script questions did Ava actually ask?

Expected questions are pulled out of the call script document, then each one
is fuzzily matched against every assistant utterance of a transcript.

This is a recall-oriented heuristic, not ground truth. Paraphrased questions
can be reported as missed, and an unrelated utterance that happens to share
enough of an item's rarer words can be reported as asked. The thresholds
below were tuned by hand; changing them changes what an audit means.
"""
import os
import re
import json
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple, Dict, Any, FrozenSet

from .models import Role, Turn
from ..errors import MalformedScript

logger = logging.getLogger("script_audit")

# Minimum normalized length for an expected question to count via verbatim substring
SUBSTRING_MIN_LENGTH = 18
# Minimum share of an item's significant tokens that must appear in one utterance
TOKEN_OVERLAP_THRESHOLD = 0.55
# Lines after a QUESTION marker searched for its quoted wording
LOOKAHEAD_LINES = 7
# Longest utterance excerpt reported for a match
EXCERPT_LIMIT = 240
# Shortest token that counts as significant
MIN_TOKEN_LENGTH = 3

DEFAULT_CALL_SCRIPT = "./call-script.txt"

STOPWORDS = frozenset([
    "a", "an", "and", "are", "as", "at", "be", "but", "by", "can", "do", "does",
    "for", "from", "have", "how", "i", "if", "in", "is", "it", "just", "me", "my",
    "of", "on", "or", "please", "say", "so", "tell", "that", "the", "then", "to",
    "today", "we", "what", "when", "which", "who", "would", "you", "your",
])

_QUESTION_RE = re.compile(r"^QUESTION\s+(\d+)\s*:\s*(.+)$", re.IGNORECASE)
_QUOTED_RE = re.compile(r'^"(.+)"$')
_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")
_WHITESPACE_RE = re.compile(r"\s+")
_LINE_BREAK_RE = re.compile(r"\r?\n")


@dataclass(frozen=True)
class ExpectedQuestion:
    """One checklist item derived from a call script."""
    id: str
    section: str
    label: str
    text: str
    match_hints: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "section": self.section,
            "label": self.label,
            "text": self.text,
            "matchHints": list(self.match_hints),
        }


@dataclass(frozen=True)
class MatchInfo:
    """Where an expected question was found."""
    score: float
    assistant_turn_index: int  # index among assistant utterances
    turn_index: int  # index in the full turn log
    excerpt: str


@dataclass
class AuditResult:
    """Asked/missed partition of a script's expected questions."""
    expected_count: int
    asked_count: int
    missed_count: int
    asked: List[Tuple[ExpectedQuestion, MatchInfo]] = field(default_factory=list)
    missed: List[ExpectedQuestion] = field(default_factory=list)

    @property
    def coverage(self) -> float:
        return self.asked_count / self.expected_count if self.expected_count else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "expectedCount": self.expected_count,
            "askedCount": self.asked_count,
            "missedCount": self.missed_count,
            "asked": [
                dict(question.to_dict(), asked=True, bestMatch={
                    "score": match.score,
                    "avaMessageIndex": match.assistant_turn_index,
                    "messageIndex": match.turn_index,
                    "excerpt": match.excerpt,
                })
                for question, match in self.asked
            ],
            "missed": [dict(question.to_dict(), asked=False, bestMatch=None) for question in self.missed],
        }


# ----------------------------------------------------------------------
# Text helpers
# ----------------------------------------------------------------------

def normalize_text(text: Optional[str]) -> str:
    """Lowercase, straighten curly apostrophes, keep only [a-z0-9] words."""
    text = (text or "").lower().replace("‘", "'").replace("’", "'")
    text = _NON_ALNUM_RE.sub(" ", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def tokens_for_match(text: Optional[str]) -> FrozenSet[str]:
    """Significant tokens: at least three characters and not a stop word."""
    return frozenset(
        token for token in normalize_text(text).split(" ")
        if len(token) >= MIN_TOKEN_LENGTH and token not in STOPWORDS
    )


def coverage_ratio(expected_tokens: FrozenSet[str], candidate_tokens: FrozenSet[str]) -> float:
    """Fraction of the expected tokens present in the candidate."""
    if not expected_tokens:
        return 0.0
    return len(expected_tokens & candidate_tokens) / len(expected_tokens)


# ----------------------------------------------------------------------
# Extraction
# ----------------------------------------------------------------------

DOB_QUESTION = ExpectedQuestion(
    id="dob_verification",
    section="greeting",
    label="Verify DOB",
    text="What is your date of birth",
    match_hints=("date of birth", "dob", "born"),
)

FINAL_QUESTIONS = ExpectedQuestion(
    id="final_questions",
    section="closing",
    label="Ask final questions",
    text="Ask if they have any final questions",
    match_hints=("any questions", "final questions", "questions for me"),
)


def _quoted_line_after(lines: Sequence[str], index: int) -> str:
    """Interior of the first wholly double-quoted line within the look-ahead window."""
    for candidate in lines[index + 1:index + 1 + LOOKAHEAD_LINES]:
        match = _QUOTED_RE.match(candidate.strip())
        if match:
            return match.group(1).strip()
    return ""


def extract_expected(script_text: Optional[str], strict: bool = False) -> List[ExpectedQuestion]:
    """
    Derive the ordered checklist for a call script.

    The DOB check always comes first and the final-questions check always
    comes last. In between, every "QUESTION <n>: <title>" marker followed
    within LOOKAHEAD_LINES lines by a quoted line becomes one item; markers
    without a quoted line are skipped.

    Args:
        script_text: Call script document
        strict: Raise MalformedScript when no QUESTION block yields an item

    Returns:
        Expected questions in document order
    """
    lines = _LINE_BREAK_RE.split(script_text or "")
    screening: List[ExpectedQuestion] = []

    for i, line in enumerate(lines):
        match = _QUESTION_RE.match(line.strip())
        if not match:
            continue

        number, title = match.group(1), match.group(2).strip()
        question_text = _quoted_line_after(lines, i)
        if not question_text:
            logger.debug("QUESTION %s has no quoted wording within %d lines, skipping", number, LOOKAHEAD_LINES)
            continue

        screening.append(ExpectedQuestion(
            id=f"screen_q{number}",
            section="medical_screening",
            label=f"Question {number}: {title}",
            text=question_text,
        ))

    if not screening:
        if strict:
            raise MalformedScript("Call script contains no QUESTION blocks with quoted wording")
        logger.warning("Call script yielded no screening questions; auditing greeting and closing only")

    return [DOB_QUESTION] + screening + [FINAL_QUESTIONS]


# ----------------------------------------------------------------------
# Matching
# ----------------------------------------------------------------------

def _best_match(question: ExpectedQuestion,
                assistant_turns: Sequence[Tuple[int, str]]) -> Tuple[float, int, int, str]:
    """Highest coverage over text and hint tokens across all assistant utterances."""
    text_tokens = tokens_for_match(question.text)
    hint_tokens = frozenset(t for hint in question.match_hints for t in tokens_for_match(hint))

    best_score, best_position, best_turn_index, best_content = 0.0, -1, -1, ""
    for position, (turn_index, content) in enumerate(assistant_turns):
        content_tokens = tokens_for_match(content)
        score = coverage_ratio(text_tokens, content_tokens)
        if hint_tokens:
            score = max(score, coverage_ratio(hint_tokens, content_tokens))
        # Ties keep the earliest utterance
        if score > best_score:
            best_score, best_position, best_turn_index, best_content = score, position, turn_index, content

    return best_score, best_position, best_turn_index, best_content


def _assistant_utterances(turns: Sequence[Turn]) -> List[Tuple[int, str]]:
    return [(i, turn.content or "") for i, turn in enumerate(turns) if turn.role is Role.ASSISTANT]


def audit(turns: Sequence[Turn], expected: Sequence[ExpectedQuestion]) -> AuditResult:
    """
    Score a transcript against expected questions.

    An item counts as asked when its normalized text (at least
    SUBSTRING_MIN_LENGTH characters) appears verbatim in the best-matching
    assistant utterance, or when the best token coverage reaches
    TOKEN_OVERLAP_THRESHOLD.
    """
    assistant_turns = _assistant_utterances(turns)
    result = AuditResult(expected_count=len(expected), asked_count=0, missed_count=0)

    for question in expected:
        score, position, turn_index, content = _best_match(question, assistant_turns)

        normalized_expected = normalize_text(question.text)
        substring_hit = (
            len(normalized_expected) >= SUBSTRING_MIN_LENGTH
            and normalized_expected in normalize_text(content)
        )

        if substring_hit or score >= TOKEN_OVERLAP_THRESHOLD:
            result.asked.append((question, MatchInfo(
                score=round(score, 3),
                assistant_turn_index=position,
                turn_index=turn_index,
                excerpt=content[:EXCERPT_LIMIT],
            )))
        else:
            result.missed.append(question)

    result.asked_count = len(result.asked)
    result.missed_count = len(result.missed)
    logger.info("Audit: %d/%d expected questions asked", result.asked_count, result.expected_count)
    return result


# ----------------------------------------------------------------------
# Persisted transcripts
# ----------------------------------------------------------------------

def turns_from_messages(messages: Sequence[Dict[str, Any]]) -> List[Turn]:
    """Rebuild turns from persisted messages, skipping roles this simulator never writes."""
    turns = []
    for message in messages or []:
        try:
            role = Role.parse(message.get("role", ""))
        except ValueError:
            logger.debug("Ignoring message with role %r", message.get("role"))
            continue
        turns.append(Turn(role=role, content=message.get("content") or "", timestamp=message.get("timestamp") or ""))
    return turns


def audit_transcript(transcript: Dict[str, Any], script_text: str, strict: bool = False) -> AuditResult:
    """Audit a persisted transcript ({"messages": [...], ...}) against script text."""
    expected = extract_expected(script_text, strict=strict)
    return audit(turns_from_messages(transcript.get("messages") or []), expected)


def audit_transcript_file(conversation_path: str,
                          script_path: Optional[str] = None,
                          strict: bool = False) -> Tuple[AuditResult, str]:
    """
    Audit a conversation file.

    The script defaults to the one named in the transcript's callScriptFile.

    Returns:
        The audit and the script path that was used
    """
    with open(conversation_path, "r", encoding="utf-8") as f:
        transcript = json.load(f)

    script_path = script_path or transcript.get("callScriptFile") or DEFAULT_CALL_SCRIPT
    with open(os.path.abspath(script_path), "r", encoding="utf-8") as f:
        script_text = f.read()

    return audit_transcript(transcript, script_text, strict=strict), script_path
