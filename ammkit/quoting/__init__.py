from ammkit.quoting.swap_math import (
    Quote,
    Reserves,
    SuperSwapQuote,
    quote_exact_input,
    quote_super_swap,
    quote_swap,
)


__all__ = [
    "Quote",
    "Reserves",
    "SuperSwapQuote",
    "quote_exact_input",
    "quote_super_swap",
    "quote_swap",
]
