"""Token dashboard UI wired to an upstream ERC-20 node."""

from __future__ import annotations

from pydantic import BaseModel, Field

from blueprint_forge.codegen import CodegenOutput, ConfiguredNode, ExecutionContext
from blueprint_forge.codegen.templates import TemplateRenderer
from blueprint_forge.registry import GeneratorDescriptor, GeneratorMetadata, Port
from blueprint_forge.utils import to_pascal


class TokenPanelConfig(BaseModel):
    title: str = Field(default="Token", min_length=1)
    show_transfer: bool = Field(default=True)
    refresh_interval: int = Field(default=15, ge=0, description="Balance refresh in seconds; 0 disables")


class TokenPanelGenerator:
    """Renders the panel from the contract data published on ``contract-in``."""

    def __init__(self, renderer: TemplateRenderer) -> None:
        self.renderer = renderer

    async def generate(self, node: ConfiguredNode, context: ExecutionContext) -> CodegenOutput:
        config: TokenPanelConfig = node.config  # type: ignore[assignment]
        token = context.input("contract-in")
        missing = [key for key in ("symbol", "abi_name") if key not in token]
        if missing:
            raise ValueError(f"contract-in is missing {', '.join(missing)}")

        output = CodegenOutput()
        component = f"{to_pascal(token['symbol'].lower())}Panel"
        template_ctx = {
            "component": component,
            "title": config.title,
            "show_transfer": config.show_transfer,
            "refresh_ms": config.refresh_interval * 1000,
            "symbol": token["symbol"],
            "name": token.get("name", token["symbol"]),
            "decimals": token.get("decimals", 18),
            "abi_name": token["abi_name"],
            "has_wallet": context.has("wallet-auth"),
        }

        output.add_file(
            f"{component}.tsx",
            self.renderer.render("token-panel/TokenPanel.tsx.j2", template_ctx),
            "frontend-components",
        )
        output.add_file(
            "use-token-balance.ts",
            self.renderer.render("token-panel/use-token-balance.ts.j2", template_ctx),
            "frontend-hooks",
        )
        output.add_file("types.ts", _TOKEN_TYPES, "frontend-types")
        output.add_doc(
            "token-panel.md",
            config.title,
            f"`<{component} />` shows the {template_ctx['name']} balance"
            + (" and a transfer form." if config.show_transfer else "."),
        )
        context.logger.info("Rendered %s for %s", component, token["symbol"])
        return output


_TOKEN_TYPES = """export interface TokenInfo {
  name: string;
  symbol: string;
  decimals: number;
}
"""


def descriptor(renderer: TemplateRenderer) -> GeneratorDescriptor:
    generator = TokenPanelGenerator(renderer)
    return GeneratorDescriptor(
        id="token-panel",
        metadata=GeneratorMetadata(
            name="Token Panel",
            description="Balance and transfer UI for an ERC-20 token",
            category="ui",
            tags=("erc20", "ui", "react"),
        ),
        config_schema=TokenPanelConfig,
        generate=generator.generate,
        ports=(
            Port(
                id="contract-in",
                name="Token Contract",
                direction="input",
                data_type="contract",
                required=True,
            ),
        ),
        requires=("erc20-stylus",),
        suggests=("wallet-auth", "frontend-scaffold"),
    )
