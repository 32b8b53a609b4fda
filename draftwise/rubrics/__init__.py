"""Assignment rubrics: parsing free text into criteria and grading drafts against them."""
