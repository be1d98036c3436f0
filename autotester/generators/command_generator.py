"""
CommandGenerator - scripted UI commands for one website build.

Produces the five command blocks (navigation, the 9-step intake wizard,
verification, interaction, quality checks) and pads the list up to the
configured minimum.
"""
import logging
import random
from typing import Dict, List, Optional, Set

from ..config import GeneratorConfig
from ..domain import BusinessProfile, Command, CommandCategory, Industry, Template
from .catalog import (
    BUSINESS_PREFIXES,
    BUSINESS_SUFFIXES,
    CITY_NAMES,
    DESCRIPTIONS,
    INDUSTRIES,
    SERVICES,
    TEMPLATES,
)

logger = logging.getLogger("autotester.generator")

NAV = CommandCategory.NAVIGATION.value
FORM = CommandCategory.FORM_FILL.value
VERIFY = CommandCategory.VERIFICATION.value
INTERACT = CommandCategory.INTERACTION.value
QUALITY = CommandCategory.QUALITY_CHECK.value

# (category, action, target, value) candidates for padding
PADDING_COMMANDS = [
    (INTERACT, "wait", None, "100"),
    (VERIFY, "snapshot", None, None),
    (INTERACT, "scroll", None, "down"),
    (INTERACT, "scroll", None, "up"),
]


class CommandGenerator:
    """Generates 50-100 UI test commands per website."""

    def __init__(self, config: Optional[GeneratorConfig] = None,
                 rng: Optional[random.Random] = None,
                 use_real_images: bool = False,
                 random_selection: bool = True):
        self.config = config or GeneratorConfig()
        self.rng = rng or random.Random()
        self.use_real_images = use_real_images
        self.random_selection = random_selection
        self.command_id = 0
        self.used_industries: Set[str] = set()
        self.used_templates: Set[str] = set()
        self._industry_cursor = 0
        self._template_cursor = 0

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select_industry(self) -> Industry:
        """Pick an industry, preferring ones not used this session."""
        selected = self._select(INDUSTRIES, self.used_industries, "_industry_cursor")
        self.used_industries.add(selected.id)
        return selected

    def select_template(self) -> Template:
        selected = self._select(TEMPLATES, self.used_templates, "_template_cursor")
        self.used_templates.add(selected.id)
        return selected

    def _select(self, catalog, used: Set[str], cursor_attr: str):
        if not self.random_selection:
            cursor = getattr(self, cursor_attr)
            setattr(self, cursor_attr, cursor + 1)
            return catalog[cursor % len(catalog)]
        unused = [item for item in catalog if item.id not in used]
        pool = unused or catalog
        return pool[self.rng.randrange(len(pool))]

    # ------------------------------------------------------------------
    # Business profile
    # ------------------------------------------------------------------

    def generate_business_name(self, industry: Industry) -> str:
        use_prefix = self.rng.random() > 0.3
        use_suffix = self.rng.random() > 0.4
        use_city = self.rng.random() > 0.5

        parts = []
        if use_prefix:
            parts.append(self.rng.choice(BUSINESS_PREFIXES))
        if use_city:
            parts.append(self.rng.choice(CITY_NAMES))
        parts.append(industry.name)
        if use_suffix:
            parts.append(self.rng.choice(BUSINESS_SUFFIXES))
        return " ".join(parts).strip()

    def generate_profile(self, industry: Industry, template: Template) -> BusinessProfile:
        """Invent the business typed into the wizard."""
        name = self.generate_business_name(industry)
        email = f"contact@{''.join(name.lower().split())}.com"
        phone = (f"({self.rng.randint(100, 999)}) "
                 f"{self.rng.randint(100, 999)}-{self.rng.randint(1000, 9999)}")
        address = (f"{self.rng.randint(1, 9999)} Main Street, "
                   f"{self.rng.choice(CITY_NAMES)}, TX {self.rng.randint(10000, 99999)}")

        descriptions = DESCRIPTIONS.get(industry.id, DESCRIPTIONS["default"])
        services = SERVICES.get(industry.id, SERVICES["default"])
        service_count = 3 + self.rng.randrange(2)

        return BusinessProfile(
            name=name,
            industry=industry,
            template=template,
            email=email,
            phone=phone,
            address=address,
            description=self.rng.choice(descriptions),
            services=", ".join(services[:service_count]),
        )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def generate(self, industry: Industry, template: Template,
                 profile: Optional[BusinessProfile] = None) -> List[Command]:
        """
        Generate the command list for one website build.

        Args:
            industry: Selected industry
            template: Selected template
            profile: Business profile; synthesized when omitted

        Returns:
            Between min_commands and max_commands commands (blocks are kept
            whole unless truncate_blocks is set).
        """
        profile = profile or self.generate_profile(industry, template)
        logger.info(f"Generating commands for {profile.name} ({industry.name})")

        commands: List[Command] = []
        commands.extend(self._navigation_block())
        commands.extend(self._form_block(profile))
        commands.extend(self._verification_block(profile.name))
        commands.extend(self._interaction_block())
        commands.extend(self._quality_block())

        while len(commands) < min(self.config.min_commands, self.config.max_commands):
            commands.append(self._padding_command())

        if len(commands) > self.config.max_commands:
            if self.config.truncate_blocks:
                logger.warning(
                    f"Truncating {len(commands)} commands to {self.config.max_commands}"
                )
                commands = commands[:self.config.max_commands]
            else:
                logger.warning(
                    f"Command list has {len(commands)} entries, above max {self.config.max_commands}"
                )

        logger.info(f"Generated {len(commands)} commands")
        return commands

    def _navigation_block(self) -> List[Command]:
        c = self._command
        return [
            c(NAV, "navigate", value="/merlin8"),
            c(NAV, "wait", value="2000"),
            c(VERIFY, "verify_text", value="Website Builder"),
            c(NAV, "click_link", "merlin-start-btn", "Start Building"),
            c(NAV, "wait", value="1000"),
            c(VERIFY, "snapshot"),
            c(INTERACT, "scroll", value="down"),
            c(NAV, "wait", value="500"),
            c(INTERACT, "scroll", value="up"),
            c(VERIFY, "verify_element", "intake-form"),
        ]

    def _form_block(self, profile: BusinessProfile) -> List[Command]:
        c = self._command
        industry, template = profile.industry, profile.template

        def next_step():
            return [c(FORM, "click_button", "next-step-btn", "Next"), c(NAV, "wait", value="1000")]

        if self.use_real_images:
            images = c(FORM, "click_button", "images-real", "Use Real Images")
        else:
            images = c(FORM, "click_button", "images-placeholder", "Use Placeholders")

        steps = [
            # 1. business name
            [c(FORM, "fill_text", "business-name", profile.name),
             c(VERIFY, "verify_element", "business-name")] + next_step(),
            # 2. industry
            [c(FORM, "click_button", f"industry-{industry.id}", industry.name),
             c(VERIFY, "verify_text", value=industry.name)] + next_step(),
            # 3. template
            [c(INTERACT, "scroll", value="down"),
             c(FORM, "click_button", f"template-{template.id}", template.name),
             c(VERIFY, "verify_text", value=template.name)] + next_step(),
            # 4. contact
            [c(FORM, "fill_text", "email", profile.email),
             c(FORM, "fill_text", "phone", profile.phone),
             c(FORM, "fill_text", "address", profile.address),
             c(VERIFY, "verify_element", "contact-form")] + next_step(),
            # 5. description
            [c(FORM, "fill_text", "description", profile.description),
             c(VERIFY, "verify_element", "description")] + next_step(),
            # 6. services
            [c(FORM, "fill_text", "services", profile.services),
             c(VERIFY, "verify_element", "services")] + next_step(),
            # 7. colors
            [c(FORM, "click_button", "color-auto", "Auto"),
             c(VERIFY, "verify_element", "color-picker")] + next_step(),
            # 8. images
            [images, c(VERIFY, "snapshot")] + next_step(),
            # 9. review and generate
            [c(VERIFY, "verify_text", value="Review"),
             c(INTERACT, "scroll", value="down"),
             c(VERIFY, "verify_text", value=profile.name),
             c(FORM, "click_button", "generate-btn", "Generate Website"),
             c(NAV, "wait", value="30000"),
             c(VERIFY, "verify_text", value="Generated")],
        ]
        return [cmd for step in steps[:self.config.form_steps] for cmd in step]

    def _verification_block(self, business_name: str) -> List[Command]:
        c = self._command
        return [
            c(VERIFY, "snapshot"),
            c(VERIFY, "verify_text", value=business_name),
            c(VERIFY, "verify_element", "generated-preview"),
            c(VERIFY, "verify_element", "hero-section"),
            c(VERIFY, "verify_element", "services-section"),
            c(VERIFY, "verify_element", "about-section"),
            c(VERIFY, "verify_element", "contact-section"),
            c(VERIFY, "verify_element", "footer"),
            c(VERIFY, "verify_title", value=business_name),
            c(VERIFY, "snapshot"),
        ]

    def _interaction_block(self) -> List[Command]:
        c = self._command
        return [
            c(INTERACT, "hover", "nav-menu"),
            c(INTERACT, "scroll", value="down"),
            c(INTERACT, "wait", value="500"),
            c(INTERACT, "scroll", value="down"),
            c(INTERACT, "hover", "cta-button"),
            c(INTERACT, "scroll", value="down"),
            c(INTERACT, "scroll", value="up"),
            c(INTERACT, "hover", "contact-form"),
            c(INTERACT, "press_key", value="Escape"),
            c(INTERACT, "scroll", value="up"),
        ]

    def _quality_block(self) -> List[Command]:
        c = self._command
        return [
            c(QUALITY, "screenshot", value="final-result"),
            c(QUALITY, "accessibility_check"),
            c(QUALITY, "console_errors"),
            c(QUALITY, "network_errors"),
            c(QUALITY, "performance_check"),
            c(QUALITY, "screenshot", value="hero-section"),
            c(QUALITY, "screenshot", value="services-section"),
            c(QUALITY, "screenshot", value="contact-section"),
            c(VERIFY, "snapshot"),
            c(QUALITY, "screenshot", value="full-page"),
        ]

    def _padding_command(self) -> Command:
        category, action, target, value = self.rng.choice(PADDING_COMMANDS)
        return self._command(category, action, target, value)

    def _command(self, category: str, action: str,
                 target: Optional[str] = None, value: Optional[str] = None) -> Command:
        self.command_id += 1
        return Command(
            id=f"cmd_{self.command_id}",
            category=category,
            action=action,
            target=target,
            value=value,
            timeout=self.config.default_timeout_ms,
            retries=self.config.default_retries,
        )

    # ------------------------------------------------------------------
    # Tracking
    # ------------------------------------------------------------------

    def reset_tracking(self):
        """Clear used industries/templates and the id counter for a new session."""
        self.used_industries.clear()
        self.used_templates.clear()
        self.command_id = 0
        self._industry_cursor = 0
        self._template_cursor = 0

    def get_stats(self) -> Dict[str, int]:
        return {
            "industries_used": len(self.used_industries),
            "templates_used": len(self.used_templates),
            "total_commands": self.command_id,
        }
