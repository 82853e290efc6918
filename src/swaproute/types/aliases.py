type BlockNumber = int
type ChainId = int
type Slippage = int
