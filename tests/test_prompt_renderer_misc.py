import prompt_renderer
from jinja2 import DictLoader, Environment
from models import ActingTechnique, CharacterContext, CharacterIdentity
from pydantic import BaseModel


def test_render_prompt_with_custom_env(monkeypatch):
    env = Environment(
        loader=DictLoader({"greet.j2": "Hello {{ name }}"}), autoescape=False
    )
    monkeypatch.setattr(prompt_renderer, "_env", env)
    result = prompt_renderer.render_prompt("greet.j2", {"name": "Bob"})
    assert result == "Hello Bob"


class Person(BaseModel):
    name: str


def test_tojson_with_pydantic_object_and_tuple(monkeypatch):
    env = Environment(
        loader=DictLoader({"obj.j2": "{{ person | tojson }} {{ beats | tojson }}"}),
        autoescape=False,
    )
    env.filters["tojson"] = prompt_renderer._tojson
    monkeypatch.setattr(prompt_renderer, "_env", env)
    result = prompt_renderer.render_prompt(
        "obj.j2", {"person": Person(name="Alice"), "beats": ("calm", "anger")}
    )
    assert result == '{"name": "Alice"} ["calm", "anger"]'


def test_core_prompt_template_renders_context():
    context = CharacterContext(
        identity=CharacterIdentity(id="jace", name="Jace Castro"),
        dialogue_lines=("Drive.",),
        other_character_names=("MARA",),
        episode_numbers=(1, 2),
        story_title="Night Shift",
        arc_title="The Job",
    )
    prompt = prompt_renderer.render_prompt(
        "actor_materials/core_user.j2",
        {
            "context": context,
            "scenes": [],
            "character_notes": [],
            "technique": ActingTechnique.MEISNER,
        },
    )

    assert 'for "Jace Castro"' in prompt
    assert '- "Drive."' in prompt
    assert "OTHER CHARACTERS IN THESE SCENES: MARA" in prompt
    assert "Arc: The Job (episodes 1, 2)" in prompt
    assert "ACTING TECHNIQUE FOCUS: Meisner" in prompt


def test_system_prompt_includes_json_rules():
    prompt = prompt_renderer.render_prompt("actor_materials/core_system.j2", {})
    assert "Return ONLY valid JSON" in prompt
