"""Runs a single generator against one configured node.

The invoker is where untrusted generator code meets the orchestrator:
configuration is validated first, the generator is run under a timeout, and
anything unexpected it does is converted into a node-scoped error.
"""

from __future__ import annotations

import asyncio
import inspect

from pydantic import ValidationError

from blueprint_forge.codegen.context import ConfiguredNode, ExecutionContext
from blueprint_forge.codegen.output import CodegenOutput
from blueprint_forge.codegen.static import StaticTemplateWalker
from blueprint_forge.errors import (
    NodeError,
    NodeGenerationError,
    NodeTimeoutError,
    SchemaValidationError,
)
from blueprint_forge.graph.models import Node
from blueprint_forge.registry import GeneratorDescriptor


class GeneratorInvoker:
    """Validate, generate, and post-process one node.

    Args:
        node_timeout: Seconds a generator may run before it is abandoned.
        walker: Collects static template files after generation.
    """

    def __init__(self, node_timeout: float = 30.0, walker: StaticTemplateWalker | None = None) -> None:
        self.node_timeout = node_timeout
        self.walker = walker or StaticTemplateWalker()

    def configure(self, node: Node, descriptor: GeneratorDescriptor) -> ConfiguredNode:
        """Validate the node's configuration merged over the descriptor defaults.

        Raises:
            SchemaValidationError: The merged configuration is invalid.
            NodeGenerationError: The schema itself raised while validating.
        """
        raw = {**descriptor.default_config, **node.config}
        try:
            config = descriptor.config_schema.model_validate(raw)
        except ValidationError as exc:
            fields = [
                (".".join(str(part) for part in err["loc"]) or "<root>", err["msg"])
                for err in exc.errors()
            ]
            raise SchemaValidationError(node.id, fields) from exc
        except Exception as exc:
            raise NodeGenerationError(node.id, exc) from exc
        return ConfiguredNode(id=node.id, generator_id=node.generator_id, config=config)

    async def invoke(
        self,
        node: Node,
        descriptor: GeneratorDescriptor,
        context: ExecutionContext,
    ) -> CodegenOutput:
        """Produce the :class:`CodegenOutput` for *node*.

        Raises:
            SchemaValidationError: Invalid configuration; the generator is not called.
            NodeTimeoutError: The generator exceeded the timeout.
            NodeGenerationError: The generator raised or misbehaved.
        """
        configured = self.configure(node, descriptor)
        try:
            output = await asyncio.wait_for(
                self._call(descriptor, configured, context), timeout=self.node_timeout
            )
        except asyncio.TimeoutError:
            raise NodeTimeoutError(node.id, self.node_timeout) from None
        except NodeError:
            raise
        except Exception as exc:
            raise NodeGenerationError(node.id, exc) from exc

        self._check_output(node, descriptor, output)

        if descriptor.template_dir is not None:
            try:
                static_files = await asyncio.to_thread(self.walker.collect, descriptor)
            except OSError as exc:
                raise NodeGenerationError(node.id, exc) from exc
            for item in static_files:
                output.add_file(item.path, item.content, item.category)
            context.logger.debug("Added %d static template file(s)", len(static_files))
        return output

    async def _call(
        self,
        descriptor: GeneratorDescriptor,
        configured: ConfiguredNode,
        context: ExecutionContext,
    ) -> object:
        generate = descriptor.generate
        if inspect.iscoroutinefunction(generate):
            return await generate(configured, context)
        result = await asyncio.to_thread(generate, configured, context)
        if inspect.isawaitable(result):
            result = await result
        return result

    def _check_output(self, node: Node, descriptor: GeneratorDescriptor, output: object) -> None:
        if not isinstance(output, CodegenOutput):
            raise NodeGenerationError(
                node.id,
                TypeError(f"generator returned {type(output).__name__}, expected CodegenOutput"),
            )
        allowed = {
            port.id
            for port in descriptor.output_ports()
            if node.ports is None or port.id in node.ports
        }
        for port_id in output.published:
            if port_id not in allowed:
                raise NodeGenerationError(
                    node.id, ValueError(f"published to undeclared output port {port_id!r}")
                )
