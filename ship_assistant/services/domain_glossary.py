DOMAIN_GLOSSARY = {
    "Cabin": {
        "meaning": "A passenger or crew stateroom, identified by its primary cabin number (e.g. '10128'). Devices with an empty, '-', 'undefined' or 'null' cabin belong to public areas.",
        "why_it_matters": "Most distribution questions count devices per cabin (e.g. 'cabins with exactly two phones')."
    },
    "Crew/Pax": {
        "meaning": "The two user classes a device serves. Derived from the free-text 'user' column (or 'area_type' for cabin switches) by substring match.",
        "why_it_matters": "Status figures are always split crew vs pax."
    },
    "Cabin/Public": {
        "meaning": "Whether a device sits inside a cabin or in a public area, from the 'inside_cabin' yes/no flag where the table has one.",
        "why_it_matters": "Tables without the flag report zero for both cabin and public quadrants."
    },
    "PBX": {
        "meaning": "The telephony system. Each phone outlet is one PBX record.",
        "why_it_matters": "'phone' and 'telephone' in a question mean the PBX table."
    },
    "TV": {
        "meaning": "The in-cabin television system. A cabin may carry several outlets (tv20128-1, tv20128-2).",
        "why_it_matters": ""
    },
    "WiFi": {
        "meaning": "Wireless access points. Its online column name differs between deployments (online__controller_, online__at_once_, online_status, online).",
        "why_it_matters": "WiFi offline counts use an explicit OFFLINE count when one exists."
    },
    "Cabin switch": {
        "meaning": "Network switches serving cabins, listed in their own table with 'cabin' and 'area_type' columns.",
        "why_it_matters": ""
    },
    "Field cable": {
        "meaning": "Structured cabling outside the device systems, including CCTV camera runs.",
        "why_it_matters": "Field cables make up the public cable list."
    },
    "Extracted": {
        "meaning": "Controller export holding the current online__controller_ status per cable id. A 'C20128' entry also covers pbx20128, tv20128, tv20128-1, tv20128-2 and wifi20128.",
        "why_it_matters": "Cable lists take their offline flag from this table."
    },
    "DK / FZ": {
        "meaning": "Deck number and fire zone, the two coordinates that locate equipment along the ship.",
        "why_it_matters": ""
    },
    "RDP": {
        "meaning": "Rack distribution point (rdp_yard): the rack a cable is patched from.",
        "why_it_matters": "A common field for distribution questions, e.g. 'list rdp with more than 5 cables'."
    }
}
