from .customer_repository import CustomerRepository, JsonCustomerRepository, generate_next_customer_id

__all__ = [
    "CustomerRepository",
    "JsonCustomerRepository",
    "generate_next_customer_id",
]
