"""Unit tests for src/engine/cloud.py"""

import httpx
import pytest

from src.core.exceptions import EngineTierError
from src.core.models import MATE_SCORE
from src.core.shared_types import AnalysisSource
from src.engine.cloud import CloudEvalTier

STARTING_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"
AFTER_E4_FEN = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1"
CLOUD_URL = "https://eval.example.org/api/cloud-eval"


def cloud_tier(status: int = 200, json=None, content: bytes | None = None) -> tuple[CloudEvalTier, list]:
    """Tier talking to a fake endpoint. Returns the tier and the list of received requests."""
    received: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append(request)
        if content is not None:
            return httpx.Response(status, content=content)
        return httpx.Response(status, json=json)

    return CloudEvalTier(CLOUD_URL, transport=httpx.MockTransport(handler)), received


def test_cloud_eval_success() -> None:
    tier, received = cloud_tier(
        json={"fen": STARTING_FEN, "depth": 40, "pvs": [{"moves": "e2e4 e7e5 g1f3", "cp": 18}]}
    )
    analysis = tier.analyze(STARTING_FEN, 20)

    assert analysis.best_move == "e2e4"
    assert analysis.evaluation == 18
    assert analysis.depth == 40
    assert analysis.principal_variation == ["e2e4", "e7e5", "g1f3"]
    assert analysis.source == AnalysisSource.CLOUD

    # request carries the position, depth, multi-PV count and variant
    params = received[0].url.params
    assert params["fen"] == STARTING_FEN
    assert params["depth"] == "20"
    assert params["multiPv"] == "1"
    assert params["variant"] == "standard"


def test_cloud_eval_score_is_relative_to_side_to_move() -> None:
    """The service scores from White's side: flip it when Black is to move."""
    tier, _ = cloud_tier(json={"pvs": [{"moves": "e7e5", "cp": 30, "depth": 25}]})
    analysis = tier.analyze(AFTER_E4_FEN, 20)
    assert analysis.evaluation == -30
    assert analysis.depth == 25


def test_cloud_eval_mate() -> None:
    tier, _ = cloud_tier(json={"pvs": [{"moves": "d1h5", "mate": 3}]})
    analysis = tier.analyze(STARTING_FEN, 12)
    assert analysis.evaluation == MATE_SCORE - 3
    assert analysis.depth == 12


@pytest.mark.parametrize(
    "status, json, content",
    [
        (404, {"error": "No cloud evaluation available for that position"}, None),
        (200, {"pvs": []}, None),  # no line at all
        (200, {"pvs": [{"cp": 10}]}, None),  # line without moves
        (200, {"pvs": [{"moves": "   "}]}, None),  # blank moves
        (200, {"unexpected": True}, None),
        (200, None, b"<html>not json</html>"),
    ],
)
def test_cloud_eval_failures(status: int, json, content) -> None:
    tier, _ = cloud_tier(status=status, json=json, content=content)
    with pytest.raises(EngineTierError):
        tier.analyze(STARTING_FEN, 20)


def test_cloud_eval_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    tier = CloudEvalTier(CLOUD_URL, transport=httpx.MockTransport(handler))
    with pytest.raises(EngineTierError):
        tier.analyze(STARTING_FEN, 20)
