"""
Demo merchants and their URLs.

Each merchant can have multiple product or collection pages. The runner
visits the first URL of every merchant.
"""

from dataclasses import dataclass
from enum import Enum


class MerchantNotFoundError(LookupError):
    """Raised when a merchant has no URL in the catalog"""

    pass


class Merchant(str, Enum):
    """Short names of the demo merchants"""

    FAKE_STORE = "fake-store"
    SAUCE_DEMO = "sauce-demo"
    OPENCART_DEMO = "opencart-demo"
    ECOM_DEMO_1 = "ecom-demo-1"
    ECOM_DEMO_2 = "ecom-demo-2"


@dataclass(frozen=True)
class MerchantUrl:
    merchant: Merchant
    url: str


MERCHANTS: list[MerchantUrl] = [
    # FakeStore Demo
    MerchantUrl(Merchant.FAKE_STORE, "https://fakestoreapi.com/products/1"),
    MerchantUrl(Merchant.FAKE_STORE, "https://fakestoreapi.com/products/2"),
    # SauceDemo
    MerchantUrl(Merchant.SAUCE_DEMO, "https://www.saucedemo.com/inventory.html"),
    # OpenCart Demo
    MerchantUrl(
        Merchant.OPENCART_DEMO,
        "https://demo.opencart.com/index.php?route=product/product&product_id=43",
    ),
    MerchantUrl(
        Merchant.OPENCART_DEMO,
        "https://demo.opencart.com/index.php?route=product/category&path=20",
    ),
    # Generic e-commerce demo 1
    MerchantUrl(Merchant.ECOM_DEMO_1, "https://www.demoblaze.com/prod.html?idp_=1"),
    MerchantUrl(Merchant.ECOM_DEMO_1, "https://www.demoblaze.com/prod.html?idp_=2"),
    # Generic e-commerce demo 2
    MerchantUrl(
        Merchant.ECOM_DEMO_2,
        "https://automationteststore.com/index.php?rt=product/product&product_id=68",
    ),
    MerchantUrl(
        Merchant.ECOM_DEMO_2,
        "https://automationteststore.com/index.php?rt=product/product&product_id=70",
    ),
]


def urls_for(merchant: Merchant | str, catalog: list[MerchantUrl] | None = None) -> list[str]:
    """All catalog URLs of a merchant, in catalog order."""
    catalog = MERCHANTS if catalog is None else catalog
    return [entry.url for entry in catalog if entry.merchant == merchant]


def first_url_for(merchant: Merchant | str, catalog: list[MerchantUrl] | None = None) -> str:
    """
    First catalog URL of a merchant.

    Raises:
        MerchantNotFoundError: If the merchant has no URL
    """
    urls = urls_for(merchant, catalog)
    if not urls:
        raise MerchantNotFoundError(f"No URL found for merchant: {getattr(merchant, 'value', merchant)}")
    return urls[0]
