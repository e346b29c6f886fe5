import pytest


class ScriptedModel:
    """Stands in for ModelClient: replays canned responses, records every call."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    async def complete(self, messages):
        self.calls.append(messages)
        r = self.responses.pop(0)
        if isinstance(r, BaseException):
            raise r
        return r


@pytest.fixture
def scripted():
    return ScriptedModel
