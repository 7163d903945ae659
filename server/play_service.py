"""REST service exposing a confidential Blackjack table."""

from __future__ import annotations

import os
from dataclasses import asdict
from typing import Any, Dict, List, Optional, Set

from fastapi import FastAPI, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from blackjack.errors import (
    DeckExhausted,
    DisclosureError,
    GameError,
    HandleNotReady,
    InsufficientBalance,
    NotAccountOwner,
    NotHandOwner,
    PayoutAlreadyClaimed,
    PhaseMismatch,
    UnknownHand,
)
from blackjack.fhe import DecryptionResult, EncryptedInput, WORD_BITS, parse_hex
from blackjack.logging_utils import get_logger, setup_logging
from blackjack.rules_schema import load_rules
from blackjack.service import TableService

logger = get_logger(__name__)

STATUS_BY_ERROR: Dict[type, int] = {
    UnknownHand: 404,
    NotHandOwner: 403,
    NotAccountOwner: 403,
    DisclosureError: 403,
    PhaseMismatch: 409,
    PayoutAlreadyClaimed: 409,
    DeckExhausted: 409,
    InsufficientBalance: 402,
    HandleNotReady: 503,
}


class InputRequest(BaseModel):
    values: List[int]
    bits: int = WORD_BITS


class StartRequest(BaseModel):
    deck: List[str] = Field(..., description="52 hex handles of encrypted card codes.")
    deck_proof: str
    wager: str
    wager_proof: str
    wager_plain: int


class DecryptRequest(BaseModel):
    handles: List[str]


class OutcomeProof(BaseModel):
    handles: List[str]
    plaintexts: List[int]
    signature: str


class ClaimRequest(BaseModel):
    claimed_win: bool
    proof: Optional[OutcomeProof] = None


class BuyRequest(BaseModel):
    wei: int


class SellRequest(BaseModel):
    chips: int


def status_for(exc: GameError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[cls]
    return 400


def create_app(service: Optional[TableService] = None) -> FastAPI:
    service = service or TableService(rules=load_rules())
    registered: Set[str] = set()

    app = FastAPI(title="Confidential Blackjack Table")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.service = service

    @app.exception_handler(GameError)
    async def game_error_handler(request: Request, exc: GameError) -> JSONResponse:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=status_for(exc), content={"reason": exc.reason, "detail": str(exc)})

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"reason": "invalid_request", "detail": str(exc)})

    def decryption_payload(result: DecryptionResult) -> Dict[str, Any]:
        return {
            "handles": [value.hex for value in result.values],
            "plaintexts": list(result.plaintexts),
            "signature": "0x" + result.signature.hex(),
        }

    # Inputs ---------------------------------------------------------------

    @app.post("/inputs")
    def encrypt_inputs(request: InputRequest, account: str = Header(..., alias="X-Account")) -> Dict[str, Any]:
        encrypted = service.encrypt_inputs(account, request.values, request.bits)
        return {"handles": [value.hex for value in encrypted.values], "proof": encrypted.proof_hex}

    # Hands ----------------------------------------------------------------

    @app.post("/hands")
    def start_hand(request: StartRequest, account: str = Header(..., alias="X-Account")) -> Dict[str, Any]:
        deck = EncryptedInput(
            values=tuple(service.resolve(handle) for handle in request.deck),
            proof=parse_hex(request.deck_proof),
        )
        wager = EncryptedInput(values=(service.resolve(request.wager),), proof=parse_hex(request.wager_proof))
        return asdict(service.start_hand(account, deck, wager, request.wager_plain))

    @app.get("/hands/{hand_id}")
    def get_hand(hand_id: int) -> Dict[str, Any]:
        return asdict(service.get_hand_view(hand_id))

    @app.get("/hands/{hand_id}/deck/{index}")
    def get_deck_card(hand_id: int, index: int) -> Dict[str, Any]:
        if not 0 <= index < 52:
            raise ValueError(f"Deck index {index} out of range.")
        return {"index": index, "handle": service.table.deck_card(hand_id, index).hex}

    @app.post("/hands/{hand_id}/hit")
    def hit(hand_id: int, account: str = Header(..., alias="X-Account")) -> Dict[str, Any]:
        return asdict(service.hit(hand_id, account))

    @app.post("/hands/{hand_id}/stand")
    def stand(hand_id: int, account: str = Header(..., alias="X-Account")) -> Dict[str, Any]:
        return asdict(service.stand(hand_id, account))

    @app.post("/hands/{hand_id}/bust")
    def set_bust(hand_id: int, account: str = Header(..., alias="X-Account")) -> Dict[str, Any]:
        return asdict(service.set_bust(hand_id, account))

    @app.post("/hands/{hand_id}/dealer-play")
    def dealer_play(hand_id: int, account: Optional[str] = Header(None, alias="X-Account")) -> Dict[str, Any]:
        return asdict(service.dealer_play(hand_id, account))

    @app.post("/hands/{hand_id}/settle")
    def settle(hand_id: int, account: Optional[str] = Header(None, alias="X-Account")) -> Dict[str, Any]:
        return asdict(service.settle(hand_id, account))

    @app.post("/hands/{hand_id}/claim")
    def claim(hand_id: int, request: ClaimRequest, account: str = Header(..., alias="X-Account")) -> Dict[str, Any]:
        proof = None
        if request.proof is not None:
            proof = DecryptionResult(
                values=tuple(service.resolve(handle) for handle in request.proof.handles),
                plaintexts=tuple(request.proof.plaintexts),
                signature=parse_hex(request.proof.signature),
            )
        return asdict(service.claim_payout(hand_id, account, request.claimed_win, proof))

    # Decryption -----------------------------------------------------------

    @app.post("/decrypt/public")
    async def public_decrypt(request: DecryptRequest) -> Dict[str, Any]:
        values = [service.resolve(handle) for handle in request.handles]
        return decryption_payload(await service.public_decrypt(values))

    @app.post("/decrypt/user")
    async def user_decrypt(request: DecryptRequest, account: str = Header(..., alias="X-Account")) -> Dict[str, Any]:
        values = [service.resolve(handle) for handle in request.handles]
        return decryption_payload(await service.user_decrypt(values, account))

    # Accounts -------------------------------------------------------------

    def require_account(path_account: str, caller: str) -> None:
        if caller != path_account:
            raise NotAccountOwner(f"{caller} may not act on account {path_account}.")

    @app.get("/accounts/{account}")
    def get_account(account: str) -> Dict[str, Any]:
        return asdict(service.get_account_view(account))

    @app.post("/accounts/{account}/register")
    def register(account: str, caller: str = Header(..., alias="X-Account")) -> Dict[str, Any]:
        require_account(account, caller)
        if account not in registered:
            registered.add(account)
            if service.rules.starting_chips:
                service.grant_chips(account, service.rules.starting_chips)
        return asdict(service.get_account_view(account))

    @app.post("/accounts/{account}/buy")
    def buy(account: str, request: BuyRequest, caller: str = Header(..., alias="X-Account")) -> Dict[str, Any]:
        require_account(account, caller)
        return asdict(service.buy_chips(account, request.wei))

    @app.post("/accounts/{account}/sell")
    def sell(account: str, request: SellRequest, caller: str = Header(..., alias="X-Account")) -> Dict[str, Any]:
        require_account(account, caller)
        return asdict(service.sell_chips(account, request.chips))

    return app


app = create_app()


def main() -> None:
    import uvicorn

    setup_logging()
    uvicorn.run(app, host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "8000")), log_level="warning")


if __name__ == "__main__":
    main()
