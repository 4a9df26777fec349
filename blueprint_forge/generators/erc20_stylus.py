"""ERC-20 token contract for Arbitrum Stylus (Rust), plus deploy tooling."""

from __future__ import annotations

import json
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from blueprint_forge.codegen import CodegenOutput, ConfiguredNode, ExecutionContext
from blueprint_forge.codegen.templates import TemplateRenderer
from blueprint_forge.registry import GeneratorDescriptor, GeneratorMetadata, Port
from blueprint_forge.utils import slugify

Feature = Literal["ownable", "mintable", "burnable", "pausable"]

RPC_ENDPOINTS: dict[str, str] = {
    "arbitrum": "https://arb1.arbitrum.io/rpc",
    "arbitrum-sepolia": "https://sepolia-rollup.arbitrum.io/rpc",
}


class ERC20StylusConfig(BaseModel):
    token_name: str = Field(default="My Token", min_length=1, max_length=50)
    token_symbol: str = Field(default="MTK", pattern=r"^[A-Z0-9]{1,11}$")
    decimals: int = Field(default=18, ge=0, le=36)
    initial_supply: str = Field(default="1000000", pattern=r"^\d+$")
    network: Literal["arbitrum", "arbitrum-sepolia"] = Field(default="arbitrum-sepolia")
    features: list[Feature] = Field(default_factory=lambda: ["ownable", "mintable"])

    @field_validator("features")
    @classmethod
    def _dedupe_features(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(value))


def token_abi(config: ERC20StylusConfig) -> list[dict]:
    """Return the ABI fragment exposed by the generated contract."""

    def fn(name: str, inputs: list[tuple[str, str]], outputs: list[str], mutability: str) -> dict:
        return {
            "type": "function",
            "name": name,
            "inputs": [{"name": n, "type": t} for n, t in inputs],
            "outputs": [{"name": "", "type": t} for t in outputs],
            "stateMutability": mutability,
        }

    abi = [
        fn("name", [], ["string"], "view"),
        fn("symbol", [], ["string"], "view"),
        fn("decimals", [], ["uint8"], "view"),
        fn("totalSupply", [], ["uint256"], "view"),
        fn("balanceOf", [("owner", "address")], ["uint256"], "view"),
        fn("transfer", [("to", "address"), ("value", "uint256")], ["bool"], "nonpayable"),
        fn("approve", [("spender", "address"), ("value", "uint256")], ["bool"], "nonpayable"),
        fn(
            "transferFrom",
            [("from", "address"), ("to", "address"), ("value", "uint256")],
            ["bool"],
            "nonpayable",
        ),
    ]
    if "mintable" in config.features:
        abi.append(fn("mint", [("to", "address"), ("value", "uint256")], [], "nonpayable"))
    if "burnable" in config.features:
        abi.append(fn("burn", [("value", "uint256")], [], "nonpayable"))
    if "pausable" in config.features:
        abi.append(fn("pause", [], [], "nonpayable"))
        abi.append(fn("unpause", [], [], "nonpayable"))
    return abi


class ERC20StylusGenerator:
    def __init__(self, renderer: TemplateRenderer) -> None:
        self.renderer = renderer

    def generate(self, node: ConfiguredNode, context: ExecutionContext) -> CodegenOutput:
        config: ERC20StylusConfig = node.config  # type: ignore[assignment]
        output = CodegenOutput()
        crate = slugify(config.token_name) or "token"
        abi_name = f"{config.token_symbol.lower()}Abi"
        template_ctx = {
            "crate": crate,
            "token_name": config.token_name,
            "token_symbol": config.token_symbol,
            "decimals": config.decimals,
            "initial_supply": config.initial_supply,
            "network": config.network,
            "features": config.features,
            "rpc_endpoint": RPC_ENDPOINTS[config.network],
        }
        abi_json = json.dumps(token_abi(config), indent=2)

        # Routed through the path mappings below.
        output.add_file(
            f"contract/{crate}/Cargo.toml",
            self.renderer.render("erc20-stylus/Cargo.toml.j2", template_ctx),
        )
        output.add_file(
            f"contract/{crate}/src/lib.rs",
            self.renderer.render("erc20-stylus/lib.rs.j2", template_ctx),
        )
        output.add_file(
            "scripts/deploy-erc20.ts",
            self.renderer.render("erc20-stylus/deploy-erc20.ts.j2", template_ctx),
        )

        output.add_file(
            "erc20-abi.ts",
            f"export const {abi_name} = {abi_json} as const;\n",
            "frontend-lib",
        )
        output.add_file("constants.ts", self._constants(config), "frontend-lib")
        output.add_interface(abi_name, "abi", abi_json)

        output.add_env_var("PRIVATE_KEY", "Deployer private key", required=True, secret=True)
        output.add_env_var(
            "NEXT_PUBLIC_TOKEN_ADDRESS", "Deployed token contract address", required=False
        )
        output.add_env_var(
            "RPC_ENDPOINT",
            "JSON-RPC endpoint used for deployment",
            required=False,
            default=RPC_ENDPOINTS[config.network],
        )
        output.add_script("deploy:token", "ts-node scripts/deploy-erc20.ts", "Deploy the ERC-20 token")
        output.add_script(
            "contract:check",
            f"cargo stylus check --manifest-path contracts/{crate}/Cargo.toml",
            "Validate the Stylus contract",
        )
        output.add_doc(
            "erc20-token.md",
            f"{config.token_name} ({config.token_symbol})",
            self.renderer.render("erc20-stylus/docs.md.j2", template_ctx),
        )

        output.publish(
            "contract-out",
            name=config.token_name,
            symbol=config.token_symbol,
            decimals=config.decimals,
            network=config.network,
            abi_name=abi_name,
            features=list(config.features),
        )
        context.logger.info("Generated %s token contract %s", config.network, config.token_symbol)
        return output

    @staticmethod
    def _constants(config: ERC20StylusConfig) -> str:
        return (
            f"export const TOKEN_SYMBOL = '{config.token_symbol}';\n"
            f"export const TOKEN_DECIMALS = {config.decimals};\n"
            "export const TOKEN_ADDRESS = (process.env.NEXT_PUBLIC_TOKEN_ADDRESS ?? '') as `0x${string}`;\n"
        )


def descriptor(renderer: TemplateRenderer) -> GeneratorDescriptor:
    generator = ERC20StylusGenerator(renderer)
    return GeneratorDescriptor(
        id="erc20-stylus",
        metadata=GeneratorMetadata(
            name="ERC-20 Stylus Token",
            description="Rust ERC-20 token for Arbitrum Stylus with deploy scripts",
            category="contracts",
            tags=("erc20", "token", "arbitrum", "stylus"),
        ),
        config_schema=ERC20StylusConfig,
        generate=generator.generate,
        ports=(
            Port(id="wallet-in", name="Wallet", direction="input", data_type="config"),
            Port(id="contract-out", name="Token Contract", direction="output", data_type="contract"),
        ),
        suggests=("wallet-auth",),
        compatible_with=("frontend-scaffold", "token-panel"),
        path_mappings=(
            ("contract/**", "contract-source"),
            ("scripts/*.ts", "contract-scripts"),
        ),
    )
