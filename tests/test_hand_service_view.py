import asyncio

import pytest

from blackjack.errors import DisclosureError
from blackjack.service import TableService

OWNER = "alice"


def open_hand(service, head, wager=100):
    deck = service.encrypt_deck(OWNER, list(head) + [2] * (52 - len(head)))
    stake = service.encrypt_inputs(OWNER, [wager])
    return service.start_hand(OWNER, deck, stake, wager)


def test_hand_service_initial_view():
    service = TableService()
    service.grant_chips(OWNER, 1000)
    view = open_hand(service, [10, 9, 10, 7])

    assert view.phase == "player_turn"
    assert view.cursor == 4
    assert view.wager_plain == 100
    assert len(view.player_cards) == 2
    assert view.visibility[view.player_cards[0]] == "owner"
    assert view.visibility[view.dealer_up_card] == "public"
    assert view.visibility[view.dealer_hole_card] == "engine_only"
    assert service.resolve(view.player_total) == service.get_hand(view.hand_id).player_total


def test_hand_service_updates_after_stand_and_settle():
    service = TableService()
    service.grant_chips(OWNER, 1000)
    view = open_hand(service, [10, 9, 10, 7])

    view = service.stand(view.hand_id, OWNER)
    assert view.phase == "dealer_turn"
    assert view.visibility[view.dealer_hole_card] == "owner"
    assert view.visibility[view.continue_flag] == "public"

    view = service.settle(view.hand_id)
    assert view.phase == "done"
    assert view.visibility[view.dealer_hole_card] == "public"
    assert view.visibility[view.outcome_flag] == "public"

    outcome = asyncio.run(service.public_decrypt([service.resolve(view.outcome_flag)]))
    account = service.claim_payout(view.hand_id, OWNER, outcome[0] == 1, outcome)
    assert account.balance == 1100
    assert account.hands == [view.hand_id]


def test_owner_only_values_stay_private():
    service = TableService()
    service.grant_chips(OWNER, 1000)
    view = open_hand(service, [10, 9, 10, 7])
    cards = [service.resolve(handle) for handle in view.player_cards]

    assert asyncio.run(service.user_decrypt(cards, OWNER)).plaintexts == (10, 9)
    with pytest.raises(DisclosureError):
        asyncio.run(service.user_decrypt(cards, "bob"))
    with pytest.raises(DisclosureError):
        asyncio.run(service.public_decrypt(cards))


def test_account_view_and_exchange():
    service = TableService()
    receipt = service.buy_chips(OWNER, 10**17)
    assert receipt.chips == 1000
    service.sell_chips(OWNER, 250)
    view = service.get_account_view(OWNER)
    assert view.balance == 750
    assert view.hands == []
