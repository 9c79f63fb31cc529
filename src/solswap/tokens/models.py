"""Token metadata model."""

from dataclasses import asdict, dataclass, replace

FALLBACK_IMAGE = (
    "https://raw.githubusercontent.com/trustwallet/assets/master/"
    "blockchains/solana/info/logo.png"
)


@dataclass(frozen=True)
class Token:
    """An SPL token (or native SOL via its wrapped mint)."""

    address: str
    symbol: str
    name: str
    decimals: int
    image_url: str = FALLBACK_IMAGE
    is_custom: bool = False

    def __post_init__(self):
        if self.decimals < 0:
            raise ValueError(f"decimals must be >= 0, got {self.decimals}")

    def as_custom(self) -> "Token":
        return replace(self, is_custom=True)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Token":
        return cls(
            address=data["address"],
            symbol=data["symbol"],
            name=data.get("name") or data["symbol"],
            decimals=int(data["decimals"]),
            image_url=data.get("image_url") or FALLBACK_IMAGE,
            is_custom=bool(data.get("is_custom", False)),
        )
