import asyncio
import itertools

from token_probes import TokenProbe, TokenSource
from token_resolver import NO_CREDENTIALS_MESSAGE, CancelToken, TokenResolver


class FakeProbe(TokenProbe):
    def __init__(self, source, token, calls):
        super().__init__(source)
        self.token = token
        self.calls = calls

    async def probe(self):
        self.calls.append(self.source)
        return self.token


def _probes(tokens, calls):
    return [FakeProbe(source, token, calls) for source, token in zip(TokenSource, tokens)]


def test_first_probe_with_token_wins_for_every_combination():
    for pattern in itertools.product([None, "tok"], repeat=len(TokenSource)):
        tokens = [f"{t}-{i}" if t else None for i, t in enumerate(pattern)]
        calls = []
        result = asyncio.run(TokenResolver(_probes(tokens, calls)).resolve())

        expected = next((i for i, t in enumerate(tokens) if t), None)
        if expected is None:
            assert not result.found
            assert len(calls) == len(TokenSource)
        else:
            assert result.token == tokens[expected]
            assert result.source == list(TokenSource)[expected]
            # later probes never run
            assert len(calls) == expected + 1


def test_blank_tokens_count_as_not_found():
    calls = []
    tokens = ["   ", "", None, "\n", "real", None]
    result = asyncio.run(TokenResolver(_probes(tokens, calls)).resolve())
    assert result.token == "real"
    assert result.source == TokenSource.COPILOT_OAUTH_JSON


def test_all_probes_empty_gives_no_credentials():
    calls = []
    resolver = TokenResolver(_probes([None] * 6, calls))
    result = asyncio.run(resolver.resolve())

    assert result.token is None
    assert result.source is None
    assert result.message == NO_CREDENTIALS_MESSAGE
    assert resolver.state == TokenResolver.RESOLVED


def test_cancel_during_probe_stops_chain():
    calls = []
    cancel = CancelToken()

    class CancellingProbe(TokenProbe):
        async def probe(self):
            calls.append(self.source)
            cancel.cancel()
            return None

    probes = [CancellingProbe(TokenSource.GH_CLI)] + _probes([None, None, "late"], calls)[1:]
    result = asyncio.run(TokenResolver(probes).resolve(cancel))

    assert result is None
    assert calls == [TokenSource.GH_CLI]


def test_cancel_after_successful_probe_returns_nothing():
    cancel = CancelToken()

    class FoundThenTornDown(TokenProbe):
        async def probe(self):
            cancel.cancel()
            return "gho_token"

    result = asyncio.run(TokenResolver([FoundThenTornDown(TokenSource.GH_CLI)]).resolve(cancel))
    assert result is None


def test_already_cancelled_runs_no_probes():
    calls = []
    cancel = CancelToken()
    cancel.cancel()
    result = asyncio.run(TokenResolver(_probes(["a"] * 6, calls)).resolve(cancel))
    assert result is None
    assert calls == []
