import unittest

from control.profiles import (
    DEFAULT_GROW_PROFILES,
    build_chamber_confirm_message,
    find_profile,
    preset_schedule_rows,
    read_profile_option,
    render_chamber_preview,
)


class GrowProfileTests(unittest.TestCase):
    def test_find_by_id_or_label(self):
        self.assertEqual(find_profile(DEFAULT_GROW_PROFILES, 2)["label"], "Vegetative")
        self.assertEqual(find_profile(DEFAULT_GROW_PROFILES, "3")["label"], "Flowering")
        self.assertEqual(find_profile(DEFAULT_GROW_PROFILES, "seedling")["id"], 1)
        self.assertIsNone(find_profile(DEFAULT_GROW_PROFILES, "Fruiting"))
        self.assertIsNone(find_profile([], 0))

    def test_read_option_with_defaults(self):
        option = read_profile_option({"id": 9, "label": "Bare", "chambers": [{"light_on": "7:5"}]}, 1)
        self.assertEqual(option.profile_id, 9)
        self.assertEqual(option.soil_dry, 35)
        self.assertEqual(option.soil_wet, 45)
        self.assertEqual(option.light_on, "--:--")
        self.assertFalse(option.light_auto)

    def test_preview_texts(self):
        option = read_profile_option(find_profile(DEFAULT_GROW_PROFILES, "Seedling"), 0)
        self.assertEqual(
            render_chamber_preview(option),
            {
                "soil": "40% dry / 55% wet",
                "light": "06:00–23:59",
                "mode": "AUTO",
                "automation": "Fan AUTO, Pump AUTO",
            },
        )
        custom = read_profile_option(find_profile(DEFAULT_GROW_PROFILES, "Custom"), 1)
        self.assertEqual(render_chamber_preview(custom)["automation"], "No Fan/Pump mode change")

    def test_confirm_message(self):
        option = read_profile_option(find_profile(DEFAULT_GROW_PROFILES, "Flowering"), 1)
        message = build_chamber_confirm_message(option, "Tomatoes", "Light 2")
        self.assertEqual(
            message.split("\n"),
            [
                "Apply 'Flowering' to Tomatoes?",
                "Soil: 35% dry / 50% wet",
                "Light 2: 08:00–20:00 (AUTO)",
                "Automation: Fan AUTO, Pump AUTO",
            ],
        )

        custom = read_profile_option(find_profile(DEFAULT_GROW_PROFILES, "Custom"), 0)
        self.assertNotIn("Automation", build_chamber_confirm_message(custom, "Basil", "Light 1"))

    def test_preset_schedule_rows(self):
        rows = preset_schedule_rows(DEFAULT_GROW_PROFILES[:2])
        self.assertEqual(
            rows[1],
            {"label": "Seedling", "l1_on": "06:00", "l1_off": "23:59", "l2_on": "06:00", "l2_off": "23:59"},
        )


if __name__ == "__main__":
    unittest.main()
