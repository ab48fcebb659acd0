"""Rye GraphQL Documents — the operations this service sends to Rye.

Invariants:
    - Every cart mutation selects the full cart so the caller can re-derive
      the remote state without a second round trip
    - Every payload selects `errors { code message }`
"""

CART_FIELDS = """
    id
    cost {
        isEstimated
        subtotal { displayValue value currency }
        shipping { displayValue value currency }
        total { displayValue value currency }
        tax { displayValue value currency }
    }
    stores {
        __typename
        ... on AmazonStore {
            store
            offer {
                shippingMethods { id label price { displayValue value currency } }
                selectedShippingMethod { id label price { displayValue value currency } }
                errors { code message }
                notAvailableIds
            }
            cartLines {
                quantity
                product { id title isAvailable images { url } }
            }
            errors { code message }
            isSubmitted
            orderId
        }
        ... on ShopifyStore {
            store
            offer {
                shippingMethods { id label price { displayValue value currency } }
                selectedShippingMethod { id label price { displayValue value currency } }
                errors { code message }
                notAvailableIds
            }
            cartLines {
                quantity
                variant { id title isAvailable image { url } priceV2 { value currency displayValue } }
                product { id title }
            }
            errors { code message }
            isSubmitted
            orderId
        }
    }
    buyerIdentity {
        firstName lastName email address1 address2
        city provinceCode countryCode postalCode phone
    }
"""

GET_CART = f"""
query GetCart($cartId: ID!) {{
    getCart(id: $cartId) {{
        cart {{ {CART_FIELDS} }}
        errors {{ code message }}
    }}
}}
"""

CREATE_CART = f"""
mutation CreateCart($input: CartCreateInput!) {{
    createCart(input: $input) {{
        cart {{ {CART_FIELDS} }}
        errors {{ code message }}
    }}
}}
"""

ADD_CART_ITEMS = f"""
mutation AddCartItems($input: CartItemsAddInput!) {{
    addCartItems(input: $input) {{
        cart {{ {CART_FIELDS} }}
        errors {{ code message }}
    }}
}}
"""

UPDATE_CART_ITEMS = f"""
mutation UpdateCartItems($input: CartItemsUpdateInput!) {{
    updateCartItems(input: $input) {{
        cart {{ {CART_FIELDS} }}
        errors {{ code message }}
    }}
}}
"""

DELETE_CART_ITEMS = f"""
mutation DeleteCartItems($input: CartItemsDeleteInput!) {{
    deleteCartItems(input: $input) {{
        cart {{ {CART_FIELDS} }}
        errors {{ code message }}
    }}
}}
"""

UPDATE_BUYER_IDENTITY = f"""
mutation UpdateCartBuyerIdentity($input: CartBuyerIdentityUpdateInput!) {{
    updateCartBuyerIdentity(input: $input) {{
        cart {{ {CART_FIELDS} }}
        errors {{ code message }}
    }}
}}
"""

SUBMIT_CART = """
mutation SubmitCart($input: CartSubmitInput!) {
    submitCart(input: $input) {
        cart {
            id
            stores {
                __typename
                status
                orderId
                store {
                    ... on AmazonStore { store }
                    ... on ShopifyStore { store }
                }
                errors { code message }
            }
        }
        errors { code message }
    }
}
"""

GET_ORDER = """
query GetOrder($orderId: ID!) {
    orderByID(id: $orderId) {
        id
        status
        createdAt
        marketplace
        marketplaceOrderIds
        total { displayValue currency }
        subtotal { displayValue currency }
        tax { displayValue currency }
        shipping { displayValue currency }
        shipments {
            carrierName
            carrierTrackingNumber
            carrierTrackingUrl
            status
            expectedDeliveryDate
        }
        events {
            __typename
            id
            createdAt
            ... on OrderFailedOrderEvent { reason reasonCode retryable }
            ... on RefundCreatedOrderEvent { amount { displayValue currency } }
        }
        requiredActions {
            __typename
            ... on CompletePaymentChallenge { redirectURL }
        }
    }
}
"""
