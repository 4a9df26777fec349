"""Next.js application skeleton.

Besides emitting the web app, this generator acts as the frontend marker:
its presence moves every frontend category under ``apps/web/src``.
"""

from __future__ import annotations

import json
from typing import Literal, Optional

from pydantic import BaseModel, Field

from blueprint_forge.codegen import CodegenOutput, ConfiguredNode, ExecutionContext
from blueprint_forge.codegen.templates import TemplateRenderer
from blueprint_forge.registry import GeneratorDescriptor, GeneratorMetadata, Port
from blueprint_forge.routing import FRONTEND_MARKER
from blueprint_forge.utils import slugify


class FrontendScaffoldConfig(BaseModel):
    app_name: str = Field(default="My dApp", min_length=1, max_length=60)
    title: Optional[str] = Field(default=None, description="Browser title; defaults to app_name")
    styling: Literal["tailwind", "css"] = Field(default="tailwind")
    next_version: str = Field(default="14.2.5")


class FrontendScaffoldGenerator:
    """Emits the ``apps/web`` Next.js application."""

    def __init__(self, renderer: TemplateRenderer) -> None:
        self.renderer = renderer

    def generate(self, node: ConfiguredNode, context: ExecutionContext) -> CodegenOutput:
        config: FrontendScaffoldConfig = node.config  # type: ignore[assignment]
        output = CodegenOutput()
        template_ctx = {
            "app_name": config.app_name,
            "title": config.title or config.app_name,
            "description": context.project.description or "",
            "tailwind": config.styling == "tailwind",
            "has_wallet": context.has("wallet-auth"),
        }

        output.add_file("package.json", _package_json(config), "frontend-root")
        output.add_file("tsconfig.json", _TSCONFIG, "frontend-root")
        output.add_file(
            "next.config.js",
            self.renderer.render("frontend-scaffold/next.config.js.j2", template_ctx),
            "frontend-root",
        )
        output.add_file(
            "layout.tsx",
            self.renderer.render("frontend-scaffold/layout.tsx.j2", template_ctx),
            "frontend-app",
        )
        output.add_file(
            "page.tsx",
            self.renderer.render("frontend-scaffold/page.tsx.j2", template_ctx),
            "frontend-app",
        )
        output.add_file(
            "globals.css",
            self.renderer.render("frontend-scaffold/globals.css.j2", template_ctx),
            "frontend-styles",
        )
        output.add_file("utils.ts", _UTILS_TS, "frontend-lib")
        output.add_file("index.ts", "export * from './utils';\n", "frontend-lib")
        output.add_file(".gitignore", "node_modules/\n.next/\n.env\n.env.local\n", "root")

        output.add_env_var(
            "NEXT_PUBLIC_APP_NAME",
            "Application name shown in the browser title",
            required=False,
            default=config.app_name,
        )
        output.add_script("dev", "npm run dev --workspace apps/web", "Start the development server")
        output.add_script("build", "npm run build --workspace apps/web", "Build the web app")
        output.add_script("start", "npm run start --workspace apps/web", "Serve the production build")
        output.add_doc(
            "frontend.md",
            "Frontend",
            self.renderer.render("frontend-scaffold/docs.md.j2", template_ctx),
        )

        output.publish("app-out", app_name=config.app_name, framework="nextjs")
        context.logger.info("Scaffolded Next.js app %r", config.app_name)
        return output


def _package_json(config: FrontendScaffoldConfig) -> str:
    manifest = {
        "name": f"{slugify(config.app_name) or 'app'}-web",
        "version": "0.1.0",
        "private": True,
        "scripts": {"dev": "next dev", "build": "next build", "start": "next start"},
        "dependencies": {
            "next": config.next_version,
            "react": "^18.3.1",
            "react-dom": "^18.3.1",
        },
        "devDependencies": {"typescript": "^5.4.0", "@types/react": "^18.3.0"},
    }
    if config.styling == "tailwind":
        manifest["devDependencies"].update({"tailwindcss": "^3.4.0", "postcss": "^8.4.0"})
    return json.dumps(manifest, indent=2) + "\n"


_TSCONFIG = json.dumps(
    {
        "compilerOptions": {
            "target": "ES2020",
            "lib": ["dom", "dom.iterable", "esnext"],
            "strict": True,
            "module": "esnext",
            "moduleResolution": "bundler",
            "jsx": "preserve",
            "noEmit": True,
            "paths": {"@/*": ["./src/*"]},
        },
        "include": ["next-env.d.ts", "**/*.ts", "**/*.tsx"],
        "exclude": ["node_modules"],
    },
    indent=2,
) + "\n"

_UTILS_TS = """export function cn(...classes: Array<string | false | null | undefined>): string {
  return classes.filter(Boolean).join(' ');
}
"""


def descriptor(renderer: TemplateRenderer) -> GeneratorDescriptor:
    generator = FrontendScaffoldGenerator(renderer)
    return GeneratorDescriptor(
        id=FRONTEND_MARKER,
        metadata=GeneratorMetadata(
            name="Frontend Scaffold",
            description="Next.js app shell that hosts every frontend generator",
            category="app",
            tags=("nextjs", "react", "frontend"),
        ),
        config_schema=FrontendScaffoldConfig,
        generate=generator.generate,
        ports=(Port(id="app-out", name="App", direction="output", data_type="config"),),
        suggests=("wallet-auth",),
    )
