"""Transactions router exposing the transaction handlers.

Create, replace and delete go through the balance service, so every call
either moves the account balances and the transaction row together or
changes nothing.
"""

from fastapi import APIRouter

from moneyapi.api.transactions import handlers
from moneyapi.schemas import TransactionOut

router = APIRouter(prefix="/transactions", tags=["transactions"])

router.add_api_route(
    "",
    handlers.list_transactions,
    methods=["GET"],
    response_model=list[TransactionOut],
)

router.add_api_route(
    "",
    handlers.create_transaction,
    methods=["POST"],
    response_model=TransactionOut,
    status_code=201,
)

router.add_api_route(
    "/{txn_id}",
    handlers.get_transaction,
    methods=["GET"],
    response_model=TransactionOut,
)

router.add_api_route(
    "/{txn_id}",
    handlers.update_transaction,
    methods=["PUT"],
    response_model=TransactionOut,
)

router.add_api_route(
    "/{txn_id}",
    handlers.delete_transaction,
    methods=["DELETE"],
    status_code=204,
)
