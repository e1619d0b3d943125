"""Taobao storefront profile.

Search results and detail pages are only fully rendered for logged-in
visitors, so every request goes through the stored browser session.
"""

from __future__ import annotations

import re
from urllib.parse import urlencode

from ..extraction import Field, extract, parse_html
from ..models import (
    Price,
    ProductDetail,
    Reviews,
    SearchQuery,
    Seller,
    Shipping,
    SortBy,
)
from ..utils import parse_count, parse_float, parse_price
from .base import BaseSite

THUMB_SUFFIX = re.compile(r"(\.(?:jpe?g|png|webp))_\d+x\d+(?:q\d+)?\.(?:jpe?g|png|webp)$", re.I)


def _price(text: str) -> float | None:
    return parse_price(text)[0]


def _full_size_image(url: str) -> str:
    """Drop the gallery thumbnail suffix ("a.jpg_60x60q90.jpg" -> "a.jpg")."""
    return THUMB_SUFFIX.sub(r"\1", url)


def _images(urls: list[str]) -> list[str]:
    seen: dict[str, None] = {}
    for url in urls:
        seen.setdefault(_full_size_image(url), None)
    return list(seen)


def _specifications(rows: list[str]) -> dict[str, str] | None:
    """Parse attribute rows such as "品牌: Apple" or "颜色分类：黑色"."""
    specs: dict[str, str] = {}
    for row in rows:
        key, sep, value = row.replace("：", ":").partition(":")
        if sep and key.strip():
            specs[key.strip()] = value.strip()
    return specs or None


def _shipping(text: str) -> Shipping:
    if "免运费" in text or "包邮" in text:
        return Shipping(fee=0.0, free_shipping=True)
    return Shipping(fee=parse_float(text), free_shipping=False)


class TaobaoSite(BaseSite):
    name = "taobao"
    display_name = "Taobao"
    domain = "taobao.com"
    base_url = "https://www.taobao.com"
    login_url = "https://login.taobao.com"
    home_url = "https://www.taobao.com"
    search_url = "https://s.taobao.com/search"
    default_page_size = 44

    sort_params = {
        SortBy.DEFAULT: "",
        SortBy.PRICE_ASC: "price-asc",
        SortBy.PRICE_DESC: "price-desc",
        SortBy.SALES: "sale-desc",
        SortBy.NEWEST: "new-desc",
    }

    not_logged_in_selector = ".site-nav-login"
    username_selector = ".site-nav-user"
    result_selector = ".item"
    total_selector = ".total"

    search_item_schema = {
        "title": Field(".title"),
        "price_text": Field(".price"),
        "image_url": Field("img", attrs=("data-src", "src"), url=True),
        "product_url": Field("a", attrs=("href",), url=True),
        "shop_name": Field(".shop"),
        "sales_text": Field(".deal-cnt"),
        "location": Field(".location"),
    }

    detail_schema = {
        "title": Field(".tb-main-title"),
        "price": Field(".tb-rmb-num", transform=_price, default=0.0),
        "original_price": Field("#J_StrPriceModBox del, .tb-original-price", transform=_price, default=None),
        "images": Field(
            "#J_ImgBooth, #J_UlThumb img",
            attrs=("data-src", "src"),
            many=True,
            url=True,
            transform=_images,
            default=[],
        ),
        "seller_id": Field("#J_Pine", attrs=("data-sellerid",), default=None),
        "seller_name": Field(".tb-seller-name"),
        "seller_rating": Field(".tb-shop-rank", transform=parse_float, default=None),
        "location": Field("#J-From, .tb-deliveryAdd", default=None),
        "sales": Field(".tb-sell-counter, #J_SellCounter", transform=parse_count, default=0),
        "review_count": Field("#J_RateCounter", transform=parse_count, default=None),
        "specifications": Field(
            "#J_AttrUL li, .attributes-list li", many=True, transform=_specifications, default=None
        ),
        "category": Field(".tb-breadcrumb a", many=True, transform=lambda names: names[-1], default=None),
        "description": Field('meta[name="description"]', attrs=("content",), default=None),
        "shipping": Field("#J_WlServiceTitle, .tb-postAge", transform=_shipping, default=None),
    }

    def build_search_url(self, query: SearchQuery) -> str:
        params: list[tuple[str, str]] = [("q", query.keyword)]

        if query.page > 1:
            params.append(("s", str((query.page - 1) * self.default_page_size)))

        if sort := self.sort_params.get(query.sort_by):
            params.append(("sort", sort))

        if query.filters:
            if query.filters.min_price:
                params.append(("startPrice", _format_number(query.filters.min_price)))
            if query.filters.max_price:
                params.append(("endPrice", _format_number(query.filters.max_price)))
            if query.filters.free_shipping:
                params.append(("free_shipping", "1"))

        return f"{self.search_url}?{urlencode(params)}"

    def parse_detail(self, html: str, url: str) -> ProductDetail:
        data = extract(parse_html(html), self.detail_schema, url)
        return ProductDetail(
            url=url,
            title=data["title"],
            price=Price(current=data["price"], original=data["original_price"], currency="CNY"),
            images=data["images"],
            seller=Seller(
                id=data["seller_id"],
                name=data["seller_name"],
                rating=data["seller_rating"],
                location=data["location"],
            ),
            description=data["description"],
            specifications=data["specifications"],
            category=data["category"],
            sales=data["sales"],
            reviews=Reviews(count=data["review_count"]) if data["review_count"] is not None else None,
            shipping=data["shipping"],
        )


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)
