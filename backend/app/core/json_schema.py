from __future__ import annotations


# LLM 输出 JSON Schema：约束推荐书目结构
RECOMMENDATIONS_SCHEMA = {
    "type": "object",
    "required": ["recommendations"],
    "properties": {
        "recommendations": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["title", "author"],
                "properties": {
                    "title": {"type": "string", "minLength": 1},
                    "author": {"type": "string"},
                },
            },
        },
    },
}
