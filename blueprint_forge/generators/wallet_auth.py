"""Wallet connection: config, hook, connect button and a static component pack."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from blueprint_forge.codegen import CodegenOutput, ConfiguredNode, ExecutionContext
from blueprint_forge.codegen.templates import TemplateRenderer
from blueprint_forge.registry import GeneratorDescriptor, GeneratorMetadata, Port

COMPONENTS_DIR = Path(__file__).resolve().parent / "components" / "wallet-auth"

Chain = Literal["arbitrum", "arbitrum-sepolia", "ethereum", "base"]

_CHAIN_IMPORTS: dict[str, str] = {
    "arbitrum": "arbitrum",
    "arbitrum-sepolia": "arbitrumSepolia",
    "ethereum": "mainnet",
    "base": "base",
}


class WalletAuthConfig(BaseModel):
    provider: Literal["rainbowkit", "connectkit", "web3modal"] = Field(default="rainbowkit")
    chains: list[Chain] = Field(default_factory=lambda: ["arbitrum", "arbitrum-sepolia"], min_length=1)
    app_name: str = Field(default="My dApp", min_length=1)
    ssr: bool = Field(default=True)


class WalletAuthGenerator:
    def __init__(self, renderer: TemplateRenderer) -> None:
        self.renderer = renderer

    def generate(self, node: ConfiguredNode, context: ExecutionContext) -> CodegenOutput:
        config: WalletAuthConfig = node.config  # type: ignore[assignment]
        output = CodegenOutput()
        chain_ids = list(dict.fromkeys(config.chains))
        template_ctx = {
            "provider": config.provider,
            "app_name": config.app_name,
            "ssr": config.ssr,
            "chains": [_CHAIN_IMPORTS[chain] for chain in chain_ids],
        }

        output.add_file(
            "wallet-config.ts",
            self.renderer.render("wallet-auth/wallet-config.ts.j2", template_ctx),
            "frontend-lib",
        )
        output.add_file("index.ts", "export * from './wallet-config';\n", "frontend-lib")
        output.add_file(
            "use-wallet.ts",
            self.renderer.render("wallet-auth/use-wallet.ts.j2", template_ctx),
            "frontend-hooks",
        )
        output.add_file(
            "ConnectButton.tsx",
            self.renderer.render("wallet-auth/ConnectButton.tsx.j2", template_ctx),
            "frontend-components",
        )
        output.add_file("types.ts", _WALLET_TYPES, "frontend-types")

        output.add_env_var(
            "NEXT_PUBLIC_WALLETCONNECT_PROJECT_ID",
            "WalletConnect Cloud project id",
            required=True,
        )
        output.add_env_var(
            "NEXT_PUBLIC_APP_NAME",
            "Application name shown in wallet dialogs",
            required=False,
            default=config.app_name,
        )
        output.add_script(
            "wallet:setup",
            'echo "Create a WalletConnect project id at https://cloud.reown.com"',
            "Wallet setup instructions",
        )
        output.add_doc(
            "wallet-auth.md",
            "Wallet authentication",
            self.renderer.render("wallet-auth/docs.md.j2", template_ctx),
        )

        output.publish("auth-out", provider=config.provider, chains=chain_ids)
        if not context.has("frontend-scaffold"):
            context.logger.warning("No frontend scaffold in the blueprint; emitting a standalone library")
        return output


_WALLET_TYPES = """export interface WalletState {
  address?: `0x${string}`;
  chainId?: number;
  isConnected: boolean;
}
"""


def descriptor(renderer: TemplateRenderer) -> GeneratorDescriptor:
    generator = WalletAuthGenerator(renderer)
    return GeneratorDescriptor(
        id="wallet-auth",
        metadata=GeneratorMetadata(
            name="Wallet Authentication",
            description="Wallet connection with RainbowKit, ConnectKit or Web3Modal",
            category="auth",
            tags=("wallet", "auth", "wagmi"),
        ),
        config_schema=WalletAuthConfig,
        generate=generator.generate,
        ports=(Port(id="auth-out", name="Auth Config", direction="output", data_type="config"),),
        suggests=("frontend-scaffold",),
        path_mappings=(
            ("src/components/**", "frontend-components"),
            ("src/hooks/**", "frontend-hooks"),
        ),
        template_dir=COMPONENTS_DIR,
        template_namespace="wallet-auth",
    )
