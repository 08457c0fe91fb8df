"""
Engine errors.

Both engines are total over their documented input domain, so the only
errors raised are caller-side data defects: an unknown lookup key.
"""


class EngineError(ValueError):
    """Base class for input errors the API layer reports as 4xx."""

    code = "engine_error"

    def __init__(self, message: str, value=None):
        super().__init__(message)
        self.value = value


class InvalidCategory(EngineError):
    code = "invalid_category"

    def __init__(self, category):
        super().__init__(f"Unknown feedstock category: {category!r}", value=category)


class InvalidScenario(EngineError):
    code = "invalid_scenario"

    def __init__(self, scenario_type):
        super().__init__(f"Unknown stress test scenario type: {scenario_type!r}", value=scenario_type)
