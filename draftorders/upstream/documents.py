"""GraphQL documents sent to the Admin API."""

DRAFT_ORDER_CREATE = """
mutation($input: DraftOrderInput!) {
  draftOrderCreate(input: $input) {
    draftOrder { id invoiceUrl }
    userErrors { field message }
  }
}
"""

DRAFT_ORDER_UPDATE = """
mutation($id: ID!, $input: DraftOrderInput!) {
  draftOrderUpdate(id: $id, input: $input) {
    draftOrder { id invoiceUrl }
    userErrors { field message }
  }
}
"""


def variant_field_alias(index: int) -> str:
    """Alias for the index-th variant in a batched price query."""
    return f"v{index}"


def variant_prices_query(count: int) -> str:
    """Build one query that fetches `count` variants, aliased v0..v{count-1}.

    Variant IDs are passed as variables named after the alias.
    """
    aliases = [variant_field_alias(i) for i in range(count)]
    params = ", ".join(f"${alias}: ID!" for alias in aliases)
    fields = "\n  ".join(f"{alias}: productVariant(id: ${alias}) {{ id price }}" for alias in aliases)
    return f"query({params}) {{\n  {fields}\n}}"
