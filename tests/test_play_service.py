from fastapi.testclient import TestClient

from blackjack.rules_schema import TableRules
from blackjack.service import TableService
from server.play_service import create_app

ALICE = {"X-Account": "alice"}
BOB = {"X-Account": "bob"}


def make_client(**rules):
    return TestClient(create_app(TableService(rules=TableRules(**rules))))


def start(client, head, wager=100):
    deck = client.post("/inputs", json={"values": list(head) + [2] * (52 - len(head)), "bits": 8}, headers=ALICE).json()
    stake = client.post("/inputs", json={"values": [wager]}, headers=ALICE).json()
    response = client.post(
        "/hands",
        json={
            "deck": deck["handles"],
            "deck_proof": deck["proof"],
            "wager": stake["handles"][0],
            "wager_proof": stake["proof"],
            "wager_plain": wager,
        },
        headers=ALICE,
    )
    assert response.status_code == 200, response.text
    return response.json()


def test_register_grants_starting_chips_once():
    client = make_client()
    assert client.post("/accounts/alice/register", headers=ALICE).json()["balance"] == 1000
    assert client.post("/accounts/alice/register", headers=ALICE).json()["balance"] == 1000


def test_full_hand_over_http():
    client = make_client(verify_payout_claims=True)
    client.post("/accounts/alice/register", headers=ALICE)
    view = start(client, [10, 9, 10, 7])
    hand_id = view["hand_id"]
    assert view["phase"] == "player_turn"

    own = client.post("/decrypt/user", json={"handles": view["player_cards"]}, headers=ALICE).json()
    assert own["plaintexts"] == [10, 9]

    view = client.post(f"/hands/{hand_id}/stand", headers=ALICE).json()
    flags = client.post("/decrypt/public", json={"handles": [view["dealer_total"], view["continue_flag"]]}).json()
    assert flags["plaintexts"] == [17, 0]

    view = client.post(f"/hands/{hand_id}/settle").json()
    assert view["phase"] == "done"
    outcome = client.post("/decrypt/public", json={"handles": [view["outcome_flag"]]}).json()
    assert outcome["plaintexts"] == [1]

    account = client.post(f"/hands/{hand_id}/claim", json={"claimed_win": True, "proof": outcome}, headers=ALICE)
    assert account.status_code == 200
    assert account.json()["balance"] == 1100

    again = client.post(f"/hands/{hand_id}/claim", json={"claimed_win": True, "proof": outcome}, headers=ALICE)
    assert again.status_code == 409
    assert again.json()["reason"] == "payout_already_claimed"


def test_disclosure_and_ownership_errors():
    client = make_client()
    client.post("/accounts/alice/register", headers=ALICE)
    view = start(client, [10, 9, 10, 7])

    hidden = client.post("/decrypt/public", json={"handles": [view["dealer_hole_card"]]})
    assert hidden.status_code == 403
    assert hidden.json()["reason"] == "disclosure_denied"

    other = client.post("/decrypt/user", json={"handles": view["player_cards"]}, headers=BOB)
    assert other.status_code == 403

    hit = client.post(f"/hands/{view['hand_id']}/hit", headers=BOB)
    assert hit.status_code == 403
    assert hit.json()["reason"] == "not_owner"

    dealer = client.post(f"/hands/{view['hand_id']}/dealer-play")
    assert dealer.status_code == 409
    assert dealer.json()["reason"] == "phase_mismatch"


def test_hit_and_bust_over_http():
    client = make_client()
    client.post("/accounts/alice/register", headers=ALICE)
    view = start(client, [10, 6, 10, 8, 10])
    view = client.post(f"/hands/{view['hand_id']}/hit", headers=ALICE).json()
    assert view["cursor"] == 5
    bust = client.post("/decrypt/public", json={"handles": [view["bust_flag"]]}).json()
    assert bust["plaintexts"] == [1]

    view = client.post(f"/hands/{view['hand_id']}/bust", headers=ALICE).json()
    assert view["phase"] == "settling"


def test_reads_and_bad_requests():
    client = make_client()
    client.post("/accounts/alice/register", headers=ALICE)
    view = start(client, [10, 9, 10, 7])

    assert client.get(f"/hands/{view['hand_id']}").json()["owner"] == "alice"
    card = client.get(f"/hands/{view['hand_id']}/deck/2").json()
    assert card["handle"] == view["dealer_up_card"]

    assert client.get("/hands/99").status_code == 404
    assert client.get(f"/hands/{view['hand_id']}/deck/52").status_code == 400
    bad = client.post("/decrypt/public", json={"handles": ["0xzz"]})
    assert bad.status_code == 400
    assert bad.json()["reason"] == "invalid_request"


def test_broke_account_cannot_start():
    client = make_client()
    deck = client.post("/inputs", json={"values": [2] * 52, "bits": 8}, headers=ALICE).json()
    stake = client.post("/inputs", json={"values": [100]}, headers=ALICE).json()
    response = client.post(
        "/hands",
        json={
            "deck": deck["handles"],
            "deck_proof": deck["proof"],
            "wager": stake["handles"][0],
            "wager_proof": stake["proof"],
            "wager_plain": 100,
        },
        headers=ALICE,
    )
    assert response.status_code == 402
    assert response.json()["reason"] == "insufficient_balance"


def test_exchange_endpoints():
    client = make_client()
    bought = client.post("/accounts/alice/buy", json={"wei": 10**18}, headers=ALICE).json()
    assert bought["chips"] == 10_000
    sold = client.post("/accounts/alice/sell", json={"chips": 20_000}, headers=ALICE)
    assert sold.status_code == 402
    assert client.get("/accounts/alice").json()["balance"] == 10_000


def test_accounts_only_move_their_own_chips():
    client = make_client()
    client.post("/accounts/alice/register", headers=ALICE)
    mallory = {"X-Account": "mallory"}

    sold = client.post("/accounts/alice/sell", json={"chips": 1000}, headers=mallory)
    assert sold.status_code == 403
    assert sold.json()["reason"] == "not_account_owner"
    assert client.post("/accounts/alice/buy", json={"wei": 10**18}, headers=mallory).status_code == 403
    assert client.post("/accounts/bob/register", headers=mallory).status_code == 403
    assert client.get("/accounts/alice").json()["balance"] == 1000
    assert client.get("/accounts/bob").json()["balance"] == 0
