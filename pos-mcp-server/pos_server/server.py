"""MCP Server for the point-of-sale terminal."""

import asyncio
import json
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from mcp.server import Server
from mcp.types import Resource, Tool, TextContent
from pydantic import AnyUrl

from .catalog import is_low_stock
from .config import Settings
from .errors import BackendError, PosError
from .models import MovementType, Receipt
from .terminal import PosTerminal

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("pos-mcp-server")

# Initialize server
app = Server("pos-mcp-server")

# Global state
terminal: PosTerminal


def _text(text: str) -> list[TextContent]:
    return [TextContent(type="text", text=text)]


def _money(value: Optional[Decimal]) -> str:
    return f"₹{(value or Decimal('0')):.2f}"


def _decimal(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise PosError(f"Invalid amount: {value}")


def format_cart() -> str:
    lines = terminal.cart.lines()
    if not lines:
        return "Cart is empty"

    result_lines = [f"Cart ({terminal.cart.item_count} items):\n"]
    for line in lines:
        result_lines.append(
            f"  - [{line.product_id}] {line.product_name}: "
            f"{line.quantity} x {_money(line.price)} = {_money(line.subtotal)}"
        )
    result_lines.append(f"\nTotal: {_money(terminal.cart.total())}")
    return "\n".join(result_lines)


def format_receipt(receipt: Receipt) -> str:
    result_lines = [
        f"Receipt {receipt.receipt_number}",
        f"Cashier: {receipt.cashier_name}",
        f"Date: {receipt.timestamp.isoformat()}",
        "",
    ]
    for line in receipt.items:
        result_lines.append(
            f"  {line.product_name} x{line.quantity}  {_money(line.subtotal)}"
        )
    result_lines.append("")
    result_lines.append(f"Total: {_money(receipt.total)}")
    result_lines.append(f"Payment: {receipt.payment_method}")
    if receipt.cash_received is not None:
        result_lines.append(f"Cash received: {_money(receipt.cash_received)}")
        result_lines.append(f"Change: {_money(receipt.change)}")
    return "\n".join(result_lines)


@app.list_resources()
async def list_resources() -> list[Resource]:
    """List available resources."""
    return [
        Resource(
            uri=AnyUrl("pos://cart"),
            name="Cart",
            mimeType="application/json",
            description="Current cart contents and checkout state",
        ),
        Resource(
            uri=AnyUrl("pos://catalog"),
            name="Catalog",
            mimeType="application/json",
            description="Loaded products and categories",
        ),
    ]


@app.read_resource()
async def read_resource(uri: AnyUrl) -> str:
    """Read a resource by URI."""
    uri_str = str(uri)

    if uri_str == "pos://cart":
        return json.dumps(terminal.cart_summary(), indent=2)

    if uri_str == "pos://catalog":
        return json.dumps(
            {
                "products": [p.model_dump(mode="json") for p in terminal.catalog.products],
                "categories": terminal.category_cards(),
            },
            indent=2,
        )

    raise ValueError(f"Unknown resource: {uri}")


@app.list_tools()
async def list_tools() -> list[Tool]:
    """List available tools."""
    product_id_schema = {
        "type": "object",
        "properties": {
            "product_id": {"type": "string", "description": "Product ID from search results"},
        },
        "required": ["product_id"],
    }
    empty_schema = {"type": "object", "properties": {}}

    return [
        Tool(
            name="pos_login",
            description="Sign in to the POS backend",
            inputSchema={
                "type": "object",
                "properties": {
                    "username": {
                        "type": "string",
                        "description": "Username (optional if POS_USERNAME configured)",
                    },
                    "password": {
                        "type": "string",
                        "description": "Password (optional if POS_PASSWORD configured)",
                    },
                },
            },
        ),
        Tool(name="pos_logout", description="Sign out and clear the session", inputSchema=empty_schema),
        Tool(
            name="pos_reload_catalog",
            description="Reload products and categories from the backend",
            inputSchema=empty_schema,
        ),
        Tool(
            name="pos_search_products",
            description="Search products by name, category or barcode, optionally within a category",
            inputSchema={
                "type": "object",
                "properties": {
                    "query": {"type": "string", "description": "Search term (may be empty)"},
                    "category": {
                        "type": "string",
                        "description": "Exact category name, or 'All'",
                    },
                },
            },
        ),
        Tool(
            name="pos_list_categories",
            description="List categories with product counts",
            inputSchema=empty_schema,
        ),
        Tool(name="pos_add_to_cart", description="Add one unit of a product to the cart", inputSchema=product_id_schema),
        Tool(
            name="pos_update_quantity",
            description="Change a cart line quantity by a delta (e.g. 1 or -1)",
            inputSchema={
                "type": "object",
                "properties": {
                    "product_id": {"type": "string", "description": "Product ID in the cart"},
                    "delta": {"type": "integer", "description": "Quantity change"},
                },
                "required": ["product_id", "delta"],
            },
        ),
        Tool(name="pos_remove_from_cart", description="Remove a product line from the cart", inputSchema=product_id_schema),
        Tool(name="pos_clear_cart", description="Empty the cart", inputSchema=empty_schema),
        Tool(name="pos_get_cart", description="Show the cart and total", inputSchema=empty_schema),
        Tool(name="pos_checkout", description="Proceed to payment for the current cart", inputSchema=empty_schema),
        Tool(name="pos_cancel_payment", description="Close payment without changing the cart", inputSchema=empty_schema),
        Tool(
            name="pos_complete_payment",
            description="Complete payment, record the sale and show the receipt",
            inputSchema={
                "type": "object",
                "properties": {
                    "payment_method": {
                        "type": "string",
                        "description": "Payment method (e.g. Cash, Card)",
                    },
                    "cash_received": {
                        "type": "number",
                        "description": "Amount tendered (Cash only)",
                    },
                },
                "required": ["payment_method"],
            },
        ),
        Tool(name="pos_close_receipt", description="Dismiss the receipt", inputSchema=empty_schema),
        Tool(name="pos_sales_history", description="List recorded sales", inputSchema=empty_schema),
        Tool(
            name="pos_inventory_log",
            description="List recorded stock movements, newest last",
            inputSchema={
                "type": "object",
                "properties": {
                    "limit": {"type": "integer", "description": "Show only the last N movements"},
                },
            },
        ),
        Tool(
            name="pos_record_stock_movement",
            description="Record a manual stock movement and reload the catalog",
            inputSchema={
                "type": "object",
                "properties": {
                    "product_id": {"type": "string", "description": "Product ID"},
                    "change_type": {
                        "type": "string",
                        "enum": [m.value for m in MovementType],
                        "description": "Kind of movement",
                    },
                    "quantity_change": {
                        "type": "integer",
                        "description": "Signed stock change (negative for damage, transfer out, ...)",
                    },
                    "remarks": {"type": "string", "description": "Optional note"},
                },
                "required": ["product_id", "change_type", "quantity_change"],
            },
        ),
    ]


@app.call_tool()
async def call_tool(name: str, arguments: Any) -> list[TextContent]:
    """Handle tool calls."""
    arguments = arguments or {}
    try:
        if name == "pos_login":
            user = await terminal.login(arguments.get("username"), arguments.get("password"))
            return _text(f"Signed in as {user.name or user.username}")

        elif name == "pos_logout":
            terminal.logout()
            return _text("Signed out")

        elif name == "pos_reload_catalog":
            await terminal.reload_catalog()
            return _text(
                f"Loaded {len(terminal.catalog.products)} products "
                f"and {len(terminal.catalog.categories)} categories"
            )

        elif name == "pos_search_products":
            query = arguments.get("query") or ""
            category = arguments.get("category")
            products = terminal.catalog.search(query, category)

            if not products:
                if category and category != "All":
                    return _text(f"No products in {category}")
                return _text("No products found")

            result_lines = [f"Found {len(products)} product(s):\n"]
            for i, product in enumerate(products, 1):
                result_lines.append(f"\n{i}. {product.name}")
                result_lines.append(f"   ID: {product.id}")
                result_lines.append(f"   Category: {product.category}")
                result_lines.append(f"   Price: {_money(product.price)}")
                low = " (LOW)" if is_low_stock(product) else ""
                result_lines.append(f"   Stock: {product.stock}{low}")
                if product.barcode:
                    result_lines.append(f"   Barcode: {product.barcode}")
            return _text("\n".join(result_lines))

        elif name == "pos_list_categories":
            cards = terminal.category_cards()
            result_lines = [f"All ({len(terminal.catalog.products)})"]
            for card in cards:
                result_lines.append(f"{card['name']} ({card['count']})")
            return _text("\n".join(result_lines))

        elif name == "pos_add_to_cart":
            terminal.add_to_cart(str(arguments["product_id"]))
            return _text(format_cart())

        elif name == "pos_update_quantity":
            terminal.cart.update_quantity(str(arguments["product_id"]), int(arguments["delta"]))
            return _text(format_cart())

        elif name == "pos_remove_from_cart":
            terminal.cart.remove_from_cart(str(arguments["product_id"]))
            return _text(format_cart())

        elif name == "pos_clear_cart":
            terminal.cart.clear_cart()
            return _text("Cart cleared")

        elif name == "pos_get_cart":
            return _text(format_cart())

        elif name == "pos_checkout":
            terminal.checkout.request_checkout()
            methods = ", ".join(terminal.checkout.payment_methods)
            return _text(
                f"Payment open. Amount due: {_money(terminal.cart.total())}\n"
                f"Accepted: {methods}"
            )

        elif name == "pos_cancel_payment":
            terminal.checkout.cancel_payment()
            return _text("Payment cancelled")

        elif name == "pos_complete_payment":
            details = terminal.checkout.payment_for_cart(
                arguments["payment_method"], _decimal(arguments.get("cash_received"))
            )
            receipt = await terminal.checkout.complete_payment(details)
            if receipt is None:
                return _text("Nothing to pay for, or a payment is already being processed")
            return _text(format_receipt(receipt))

        elif name == "pos_close_receipt":
            terminal.checkout.close_receipt()
            return _text("Receipt closed")

        elif name == "pos_sales_history":
            sales = await terminal.client.get_transactions()
            if not sales:
                return _text("No sales recorded")
            result_lines = [f"{len(sales)} sale(s):"]
            for sale in sales:
                when = sale.timestamp.isoformat() if sale.timestamp else "-"
                result_lines.append(
                    f"  {sale.receipt_number}  {when}  {sale.payment_method}  "
                    f"{_money(sale.total)}  ({sale.cashier_name})"
                )
            return _text("\n".join(result_lines))

        elif name == "pos_inventory_log":
            logs = await terminal.client.get_inventory_logs()
            limit = arguments.get("limit")
            if limit:
                logs = logs[-int(limit):]
            if not logs:
                return _text("No stock movements recorded")
            result_lines = [f"{len(logs)} stock movement(s):"]
            for log in logs:
                when = log.timestamp.isoformat() if log.timestamp else "-"
                remarks = f"  {log.remarks}" if log.remarks else ""
                result_lines.append(
                    f"  {when}  {log.product_name or log.product_id}  "
                    f"{log.change_type} {log.quantity_change:+d}{remarks}"
                )
            return _text("\n".join(result_lines))

        elif name == "pos_record_stock_movement":
            product_id = str(arguments["product_id"])
            await terminal.catalog.record_stock_movement(
                terminal.client,
                product_id,
                arguments["change_type"],
                int(arguments["quantity_change"]),
                arguments.get("remarks") or "",
            )
            product = terminal.require_product(product_id)
            change = int(arguments["quantity_change"])
            return _text(
                f"Recorded {arguments['change_type']} {change:+d} for {product.name}. "
                f"In stock: {product.stock}"
            )

        else:
            return _text(f"Unknown tool: {name}")

    except BackendError as e:
        logger.error(f"Backend error in tool {name}: {e}")
        return _text(f"Error: {e}")
    except PosError as e:
        return _text(f"Error: {e}")
    except Exception as e:
        logger.error(f"Error executing tool {name}: {e}", exc_info=True)
        return _text(f"Error: {str(e)}")


async def main() -> None:
    """Main entry point for the MCP server."""
    global terminal

    settings = Settings.from_env()
    terminal = PosTerminal(settings)
    logger.info(f"Backend: {settings.api_base}")

    if settings.username and settings.password and not terminal.auth_manager.is_authenticated():
        try:
            await terminal.login()
        except PosError as e:
            logger.warning(f"Auto-login failed: {e}")

    try:
        await terminal.reload_catalog()
    except BackendError as e:
        logger.error(f"Catalog not loaded, use pos_reload_catalog once the backend is up: {e}")

    logger.info("Starting POS MCP Server...")

    # Import and run the server
    from mcp.server.stdio import stdio_server

    try:
        async with stdio_server() as (read_stream, write_stream):
            await app.run(
                read_stream,
                write_stream,
                app.create_initialization_options(),
            )
    finally:
        await terminal.aclose()


if __name__ == "__main__":
    asyncio.run(main())
