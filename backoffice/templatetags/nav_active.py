from decimal import Decimal, InvalidOperation

from django import template

register = template.Library()


@register.simple_tag(takes_context=True)
def active(context, url: str, cls="active"):
    """Mark a nav link active for its own page and, except for the root, the pages below it."""
    request = context.get("request")
    if request is None:
        return ""
    path = request.path
    if url == "/":
        return cls if path == "/" else ""
    return cls if path.startswith(url) else ""


@register.filter
def lkr(value):
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return value
    return f"LKR {amount:,.2f}"
