"""Weighted keyword lexicon used to score annotations.

Terms are lowercase and matched as plain substrings of the annotation
text. Declaration order is significant: it fixes the order of matched
terms in every score record.
"""

from types import MappingProxyType


_KEYWORDS: tuple[tuple[str, int], ...] = (
    # Fashion & style
    ("tote bag", 4),
    ("tote-bag", 4),
    ("tote", 1),
    ("canvas tote", 3),
    ("graphic tee", 2),
    ("ironic t-shirt", 2),
    ("oversized shirt", 2),
    ("oversized flannel", 3),
    ("denim jacket", 2),
    ("baggy pants", 2),
    ("cargo pants", 3),
    ("workwear pants", 2),
    ("cuffed jeans", 2),
    ("long shorts", 2),
    ("mesh shorts", 2),
    ("beanie", 2),
    ("baseball cap", 2),
    ("mustache", 3),
    ("moustache", 3),
    ("painted nails", 3),
    ("thrift", 2),
    ("eyeliner", 2),
    ("eye shadow", 2),
    ("lipstick", 2),
    ("curly hair", 2),
    ("tattoo", 2),
    ("balaclava", 3),
    ("cigarette", 2),
    # Footwear
    ("birkenstock", 3),
    ("crocs", 2),
    ("loafers", 3),
    ("retro sneakers", 2),
    ("new balance", 3),
    # Brands
    ("nike", 2),
    ("lululemon", 2),
    ("arc'teryx", 3),
    ("trader joe's", 2),
    ("erewhon", 3),
    # Accessories
    ("carabiner", 2),
    ("silver ring", 2),
    ("chain necklace", 2),
    ("fanny pack", 2),
    ("apple watch", 2),
    ("plushie", 2),
    ("labubu", 5),
    ("ring", 1),
    ("bracelet", 1),
    ("lanyard", 1),
    # Tech & gadgets
    ("wired headphones", 3),
    ("wired earbuds", 3),
    ("mp3 player", 2),
    ("cable", 2),
    ("usb-c cable", 2),
    ("earbuds", 2),
    ("earphones", 2),
    ("earpiece", 2),
    ("airpod", 3),
    ("flip phone", 2),
    ("film camera", 3),
    ("disposable camera", 3),
    ("polaroid", 2),
    ("lav mic", 3),
    # Food & drink
    ("iced coffee", 3),
    ("cold brew", 3),
    ("iced matcha", 4),
    ("matcha latte", 4),
    ("matcha", 1),
    ("stanley cup", 3),
    ("stanley tumbler", 3),
    ("erewhon smoothie", 4),
    ("kombucha", 2),
    ("single-origin coffee", 3),
    ("avocado toast", 2),
    ("sourdough", 3),
    ("baguette", 2),
    # Hobbies & props
    ("vinyl", 3),
    ("picnic blanket", 2),
    ("selfie", 3),
    ("mirror selfie", 3),
    ("vape", 2),
    ("tampon", 4),
    ("teacup pig", 7),
    # Books, authors, music
    ("bell hooks", 3),
    ("joan didion", 3),
    ("patti smith", 3),
    ("sylvia plath", 3),
    ("phoebe bridgers", 2),
    ("clairo", 2),
    ("mitski", 2),
    ("laufey", 2),
    ("lana del rey", 2),
    ("booktok", 2),
    ("book", 3),
    ("feminist literature", 3),
)

# Read-only, process-wide; safe for unsynchronized concurrent reads.
KEYWORD_LEXICON: MappingProxyType[str, int] = MappingProxyType(dict(_KEYWORDS))

# Summed weights at or above this value score 10.
SCORE_CAP = 12
MAX_SCORE = 10
