"""Prompt Templates - instructions sent to the completion backend.

The conversation always runs behind SYSTEM_PROMPT. The first user turn carries
two parts: the base payload for the classified project type, then the
user's request wrapped by initial_prompt(). Follow-ups add one turn built by
follow_up_prompt().
"""

from src.domain.services.artifact_parser import ACTION_TAG, ARTIFACT_TAG
from src.domain.services.project_classifier import NODE, REACT

SYSTEM_PROMPT = f"""You are an expert senior software developer working inside a sandboxed Node.js environment.

The environment can run JavaScript, TypeScript and npm packages. It cannot run native binaries,
compile C/C++ or use git. Prefer Vite for frontend projects and plain Node.js for backends.

Reply with a SINGLE artifact that contains everything needed to build and run the project:

<{ARTIFACT_TAG} id="kebab-case-id" title="Project Title">
  <{ACTION_TAG} type="file" filePath="relative/path/to/file.ext">
    ...complete file content...
  </{ACTION_TAG}>
  <{ACTION_TAG} type="shell">
    npm install
  </{ACTION_TAG}>
</{ARTIFACT_TAG}>

Rules:
- File paths are relative to the project root and use forward slashes.
- Always write the COMPLETE file content. Never use placeholders such as "rest of code here".
- Declare every dependency in package.json and install with npm.
- Order actions so that files exist before the commands that use them.
- Do not restart the dev server if it is already running.
- Keep prose outside the artifact short.
"""

CLASSIFY_INSTRUCTION = (
    "Determine if the user wants a 'node' or 'react' project based on their request. "
    "Consider keywords like 'frontend', 'UI', 'component', 'website' for React. "
    "Consider keywords like 'backend', 'API', 'server', 'database' for Node. "
    "Respond with ONLY the word 'node' or 'react', nothing else."
)

CODE_OUTPUT_INSTRUCTION = """IMPORTANT: Do NOT use markdown code fences (```) in your generated code files.
Do NOT include language identifiers (like 'typescript', 'javascript', etc.) at the start or end.
Provide clean, raw code content only."""

BASE_GUIDELINES = """# PROJECT GENERATION STANDARDS

Create polished, production-ready applications. Avoid generic, cookie-cutter designs.

- Framework: React 18 with TypeScript, built with Vite
- Styling: Tailwind CSS utility classes
- Icons: lucide-react
- Images: Unsplash URLs only, never download files
- Only add packages that are required for the requested functionality
"""

# Files the backend should assume exist but are not worth sending.
HIDDEN_FILES = (".gitignore", "package-lock.json")

_REACT_TEMPLATE = f"""<{ARTIFACT_TAG} id="project-import" title="Project Files">
<{ACTION_TAG} type="file" filePath="package.json">{{
  "name": "vite-react-typescript-starter",
  "private": true,
  "version": "0.0.0",
  "type": "module",
  "scripts": {{
    "dev": "vite",
    "build": "vite build",
    "preview": "vite preview"
  }},
  "dependencies": {{
    "lucide-react": "^0.344.0",
    "react": "^18.3.1",
    "react-dom": "^18.3.1"
  }},
  "devDependencies": {{
    "@types/react": "^18.3.5",
    "@types/react-dom": "^18.3.0",
    "@vitejs/plugin-react": "^4.3.1",
    "autoprefixer": "^10.4.18",
    "postcss": "^8.4.35",
    "tailwindcss": "^3.4.1",
    "typescript": "^5.5.3",
    "vite": "^5.4.2"
  }}
}}
</{ACTION_TAG}>
<{ACTION_TAG} type="file" filePath="index.html"><!doctype html>
<html lang="en">
  <head>
    <meta charset="UTF-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1.0" />
    <title>Vite + React + TS</title>
  </head>
  <body>
    <div id="root"></div>
    <script type="module" src="/src/main.tsx"></script>
  </body>
</html>
</{ACTION_TAG}>
<{ACTION_TAG} type="file" filePath="vite.config.ts">import {{ defineConfig }} from 'vite';
import react from '@vitejs/plugin-react';

export default defineConfig({{
  plugins: [react()],
}});
</{ACTION_TAG}>
<{ACTION_TAG} type="file" filePath="tailwind.config.js">/** @type {{import('tailwindcss').Config}} */
export default {{
  content: ['./index.html', './src/**/*.{{js,ts,jsx,tsx}}'],
  theme: {{ extend: {{}} }},
  plugins: [],
}};
</{ACTION_TAG}>
<{ACTION_TAG} type="file" filePath="postcss.config.js">export default {{
  plugins: {{ tailwindcss: {{}}, autoprefixer: {{}} }},
}};
</{ACTION_TAG}>
<{ACTION_TAG} type="file" filePath="src/main.tsx">import {{ StrictMode }} from 'react';
import {{ createRoot }} from 'react-dom/client';
import App from './App.tsx';
import './index.css';

createRoot(document.getElementById('root')!).render(
  <StrictMode>
    <App />
  </StrictMode>
);
</{ACTION_TAG}>
<{ACTION_TAG} type="file" filePath="src/App.tsx">function App() {{
  return (
    <div className="min-h-screen bg-gray-100 flex items-center justify-center">
      <p>Start prompting (or editing) to see magic happen :)</p>
    </div>
  );
}}

export default App;
</{ACTION_TAG}>
<{ACTION_TAG} type="file" filePath="src/index.css">@tailwind base;
@tailwind components;
@tailwind utilities;
</{ACTION_TAG}>
</{ARTIFACT_TAG}>"""

_NODE_TEMPLATE = f"""<{ARTIFACT_TAG} id="project-import" title="Project Files">
<{ACTION_TAG} type="file" filePath="package.json">{{
  "name": "node-starter",
  "version": "1.0.0",
  "type": "module",
  "main": "index.js",
  "scripts": {{
    "dev": "node --watch index.js",
    "start": "node index.js"
  }}
}}
</{ACTION_TAG}>
<{ACTION_TAG} type="file" filePath="index.js">// run `node index.js` in the terminal

console.log(`Hello Node.js v${{process.versions.node}}!`);
</{ACTION_TAG}>
</{ARTIFACT_TAG}>"""

TEMPLATES: dict[str, str] = {REACT: _REACT_TEMPLATE, NODE: _NODE_TEMPLATE}


def template_for(project_type: str) -> str:
    """Starter artifact shown to the backend (and to the UI) for a project type."""
    try:
        return TEMPLATES[project_type]
    except KeyError:
        raise ValueError(f"Unknown project type: {project_type!r}") from None


def files_note(project_type: str) -> str:
    """Context part listing the starter files and the files that are not shown."""
    hidden = "\n".join(f"  - {name}" for name in HIDDEN_FILES)
    return (
        "Here is an artifact that contains all files of the project visible to you.\n"
        "Consider the contents of ALL files in the project.\n\n"
        f"{template_for(project_type)}\n\n"
        "Here is a list of files that exist on the file system but are not being shown to you:\n\n"
        f"{hidden}\n"
    )


def base_payload(project_type: str) -> list[str]:
    """Parts that precede the user's request in the first turn."""
    return [BASE_GUIDELINES, files_note(project_type)]


def initial_prompt(user_prompt: str) -> str:
    return f"{CODE_OUTPUT_INSTRUCTION}\n\nUSER REQUEST:\n{user_prompt.strip()}"


def follow_up_prompt(user_prompt: str) -> str:
    """Modification request appended as a new user turn."""
    return (
        f"{CODE_OUTPUT_INSTRUCTION}\n\n"
        f"USER REQUEST:\n{user_prompt.strip()}\n\n"
        "REMEMBER:\n"
        "- Review ALL existing files before making changes\n"
        "- Provide COMPLETE file content, not just the modified parts\n"
        "- Maintain consistency with the existing codebase\n"
        "- Do NOT restart the dev server if it's already running"
    )
