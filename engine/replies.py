from __future__ import annotations

from typing import List, Optional

from models.schemas import Customer, CustomerData, CustomerWithOrderCount, Order

NOT_PROVIDED = "Not provided"

HELP_TEXT = (
    "I can help you with customer management. Try:\n"
    "• 'Create customer John'\n"
    "• 'Edit customer c1'\n"
    "• 'Delete customer c2'\n"
    "• 'List customers'\n"
    "• 'View customer c1'"
)

START_OVER = "I'm not sure what you want to do. Let's start over."
AWAITING_CONFIRMATION = "Please confirm or cancel the pending action before continuing."
CANCELLED = "❌ Action cancelled."
NO_CUSTOMERS = "📋 No customers found."


def _or(value: Optional[str], fallback: str = NOT_PROVIDED) -> str:
    return value or fallback


def customer_not_found(identifier: str) -> str:
    return f'❌ Customer "{identifier}" not found.'


def looks_like_id(name: str) -> str:
    return (
        f'"{name}" looks like a customer ID. To edit or delete a customer, use: '
        f'"Edit customer {name}" or "Delete customer {name}"'
    )


def create_summary(data: CustomerData) -> str:
    return (
        "✅ Perfect! Let me confirm the details:\n\n"
        "📋 Customer Details:\n"
        f"• Name: {data.name}\n"
        f"• Email: {_or(data.email)}\n"
        f"• Phone: {_or(data.phone)}\n\n"
        "Should I create this customer?"
    )


def edit_diff(field: str, old_value: Optional[str], new_value: str) -> str:
    return f'Confirm change:\n{field}: "{_or(old_value, "Not set")}" → "{new_value}"\n\nShould I update this customer?'


def customer_details(customer: Customer, heading: str, section: str = "Customer Details") -> str:
    return (
        f"{heading}\n\n"
        f"📋 {section}:\n"
        f"• ID: {customer.id}\n"
        f"• Name: {customer.name}\n"
        f"• Email: {_or(customer.email)}\n"
        f"• Phone: {_or(customer.phone)}"
    )


def customer_list(customers: List[CustomerWithOrderCount]) -> str:
    if not customers:
        return NO_CUSTOMERS
    lines = [
        f"• {c.name} (ID: {c.id}) - {c.order_count} orders - 📞 {_or(c.phone, 'No phone')} - 📧 {_or(c.email, 'No email')}"
        for c in customers
    ]
    return f"📋 Customers ({len(customers)}):\n\n" + "\n".join(lines)


def customer_view(customer: Customer, orders: List[Order]) -> str:
    text = (
        "📋 Customer Details:\n\n"
        f"• ID: {customer.id}\n"
        f"• Name: {customer.name}\n"
        f"• Email: {_or(customer.email)}\n"
        f"• Phone: {_or(customer.phone)}\n"
        f"• Orders: {len(orders)}\n"
    )
    if orders:
        text += "\nRecent Orders:\n" + "\n".join(
            f"  • Order {o.id}: ${o.total:.2f} ({len(o.items)} items)" for o in orders
        )
    return text


def already_exists(name: str, existing_id: str) -> str:
    return f'❌ Customer "{name}" already exists with ID: {existing_id}'


def deleted(data: CustomerData) -> str:
    return f'✅ Customer "{data.name}" (ID: {data.id}) has been deleted successfully.'


def no_longer_exists(data: CustomerData) -> str:
    return f'❌ Customer "{data.name}" (ID: {data.id}) no longer exists. Nothing was changed.'


def create_prompt(name: str) -> str:
    return f"👤 Great! Let's create customer \"{name}\". What's their email address? (or type 'skip')"


def edit_prompt(identifier: str) -> str:
    return f'✏️ Let\'s edit customer "{identifier}". Which field would you like to edit? (name, email, phone)'


def delete_prompt(identifier: str) -> str:
    return (
        f'⚠️ Are you sure you want to delete customer "{identifier}"? '
        "This will also delete all their orders and cannot be undone."
    )


def email_skipped() -> str:
    return "Okay, no email. What's their phone number? (or type 'skip')"


def email_set(email: str) -> str:
    return f"📧 Email set to: {email}. What's their phone number? (or type 'skip')"


def email_invalid() -> str:
    return "That doesn't look like a valid email. Please provide a valid email or type 'skip'."


def phone_set(phone: str, data: CustomerData) -> str:
    return f"📞 Phone set to: {phone}. {create_summary(data)}"


def phone_missing() -> str:
    return "Please type a phone number or 'skip'."


def ask_new_value(field: str, customer_name: Optional[str]) -> str:
    return f"What's the new {field} for customer {customer_name}?"


def field_invalid() -> str:
    return "Please choose a valid field to edit: name, email, or phone"


def value_missing(field: str) -> str:
    return f"Please type the new {field}."


def fetching_customers() -> str:
    return "📋 Let me fetch all customers for you..."


def looking_up(identifier: str) -> str:
    return f'🔍 Looking up customer "{identifier}"...'
