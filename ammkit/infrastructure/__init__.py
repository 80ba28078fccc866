from ammkit.infrastructure.rpc_gateway import RpcGateway, RpcLedger, RpcSubmitter, TokenBalance


__all__ = ["RpcGateway", "RpcLedger", "RpcSubmitter", "TokenBalance"]
