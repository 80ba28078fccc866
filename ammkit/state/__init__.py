from ammkit.state.pool_decoder import Pool, decode_pool, encode_pool, pool_filters


__all__ = ["Pool", "decode_pool", "encode_pool", "pool_filters"]
