"""Payment constants, enums, and gateway wire names."""
from enum import Enum, IntFlag


class PaymentStatus(str, Enum):
    """
    Payment status lifecycle.

    Flow:
        new -> pending -> paid

    - new: Created at checkout, no gateway reference yet
    - pending: Reference issued, waiting for the payer
    - paid: Gateway notified the payment and it was reconciled
    A failed operation leaves the status unchanged.
    """
    NEW = "new"
    PENDING = "pending"
    PAID = "paid"


class AddressType(IntFlag):
    """Address roles; an address may be both billing and shipping."""
    BILLING = 1
    SHIPPING = 2
    BILLING_AND_SHIPPING = 3


# Code of the payment method / gateway on the platform
GATEWAY_CODE = "Easypay"

# Base endpoints
PRODUCTION_URL = "https://www.easypay.pt/_s/"
SANDBOX_URL = "http://test.easypay.pt/_s/"

# Authentication parameter, always sent
AUTH_PARAM = "s_code"

# Response status/message pair
STATUS_FIELD = "ep_status"
MESSAGE_FIELD = "ep_message"
STATUS_OK = "ok"

# Repeated child element of collection responses
COLLECTION_RECORD = "ref"


class Operation(str, Enum):
    """Gateway operation codes (api_easypay_<code>.php)."""
    REQUEST_REFERENCE = "01BG"
    REQUEST_SPLIT_REFERENCE = "01SP"
    PAYMENT_DETAIL = "03AG"
    LIST_PAYMENTS = "040BG1"

    @property
    def path(self) -> str:
        return f"api_easypay_{self.value}.php"


# Response fields the orchestration relies on
FIELD_REFERENCE = "ep_reference"
FIELD_ORDER_KEY = "t_key"
FIELD_VALUE = "ep_value"
FIELD_TRANSACTION = "ep_doc"
FIELD_DATE = "ep_date"

# Settings names (store-scoped and module-wide)
SETTING_AUTH_KEY = "Easypay.AuthenticationKey"
SETTING_SANDBOX = "Easypay.Sandbox"
SETTING_CRON = "Easypay.CronExpression"
SETTING_PAYMENT_CLIENT_ID = "Easypay.Payment.ClientID"
SETTING_PAYMENT_USERNAME = "Easypay.Payment.Username"
SETTING_PAYMENT_ENTITY_ID = "Easypay.Payment.EntityID"
SETTING_COUNTRY = "Easypay.Country"
SETTING_SPLIT_PAYMENTS = "Easypay.SplitPayments"
SETTING_ACCOUNT_CLIENT_ID = "Easypay.Account.ClientID"
SETTING_ACCOUNT_USERNAME = "Easypay.Account.Username"
SETTING_ACCOUNT_ENTITY_ID = "Easypay.Account.EntityID"

DEFAULT_CRON_EXPRESSION = "0/5 * * * *"

# Registry key used when no store is given
GLOBAL_CLIENT_KEY = "*"
