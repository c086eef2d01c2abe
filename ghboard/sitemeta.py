"""
sitemeta — Static metadata for the Speakify web front end.
"""

SITE_CONFIG = {
    "title": "Speakify",
    "description": (
        "Interactive platform for language learning with lessons, quizzes, "
        "and progress tracking."
    ),
    "keywords": [
        "reactjs",
        "nextjs",
        "vercel",
        "react",
        "speakify",
        "learn-language",
        "shadcn",
        "shadcn-ui",
        "radix-ui",
        "cn",
        "clsx",
        "speakify",
        "postgresql",
        "sonner",
        "drizzle",
        "zustand",
        "mysql",
        "lucide-react",
        "clerk-themes",
        "clerk",
        "postcss",
        "prettier",
        "react-dom",
        "tailwindcss",
        "tailwindcss-animate",
        "ui/ux",
        "js",
        "javascript",
        "typescript",
        "eslint",
        "html",
        "css",
    ],
    "authors": {
        "name": "SpeakifyLK",
        "url": "https://github.com/speakifyLK",
    },
}

LINKS = {
    "sourceCode": "https://github.com/speakifyLK/speakifyLK",
    "email": "speakifylk@gmail.com",
}
