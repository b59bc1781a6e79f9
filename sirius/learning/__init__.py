"""Learning - pattern recognition, prediction and reward learning

Core Principle:
    The system becomes smarter over time without asking the user to do
    anything. Every interaction is a data point; patterns are re-derived
    from the whole log each time a new interaction arrives.

Components:
    circadian.py: Performance scoring and circadian classification
        - Period buckets: morning, afternoon, evening, night
        - Types: morning_person, evening_person, night_owl, balanced

    pattern_learner.py: Five learning passes over the interaction log
        - Time/circadian patterns, behavioural preferences
        - Per-operation success patterns, top context combinations
        - Transition table between consecutive context states

    prediction.py: Read-only consumers of the learned patterns
        - Next action, optimal timing, success probability
        - Aggregated personalized recommendations

    analytics.py: Dashboard summary of the raw interaction log

    rlvr.py: 1-shot reward learning agent with a tabular policy

Graceful degradation: every prediction returns a zero/low-confidence
answer when there is not enough data, never an error.
"""

# Circadian periods and their hour ranges [start, end)
CIRCADIAN_PERIODS = {
    "morning": (5, 12),
    "afternoon": (12, 17),
    "evening": (17, 22),
    "night": (22, 5),
}

# Sunday first, matching the numeric day distribution (0 = Sunday)
WEEKDAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

# Context fields compared when matching a context against learned ones
CONTEXT_FIELDS = ("time_block", "focus", "energy", "urgency")

PRIORITY_ORDER = {"high": 3, "medium": 2, "low": 1}
