"""
Demo journey shown to signed-out visitors and loaded by `manage.py seed-demo`.
"""

DEMO_PLACES = [
    {
        'id': '1',
        'name': 'Wat Arun',
        'location': 'Bangkok',
        'dateAdded': '12 Oct 2023',
        'image': 'https://images.unsplash.com/photo-1508009603885-50cf7c579365?q=80&w=2592&auto=format&fit=crop',
        'isMarked': True,
        'category': 'Temple',
        'description': 'The Temple of Dawn, a riverside landmark.',
    },
    {
        'id': '2',
        'name': 'Maya Bay',
        'location': 'Krabi',
        'dateAdded': '5 Jan 2023',
        'image': 'https://images.unsplash.com/photo-1552465011-b4e21bf6e79a?q=80&w=2639&auto=format&fit=crop',
        'isMarked': True,
        'category': 'Beach',
        'description': 'Bay with limestone cliffs and clear water.',
    },
    {
        'id': '3',
        'name': 'Doi Inthanon',
        'location': 'Chiang Mai',
        'dateAdded': '22 Dec 2022',
        'image': 'https://images.unsplash.com/photo-1590523278135-c59843e95078?q=80&w=2648&auto=format&fit=crop',
        'isMarked': True,
        'category': 'Mountain',
        'description': 'The highest mountain in Thailand.',
    },
    {
        'id': '4',
        'name': 'Ayutthaya Historical Park',
        'location': 'Ayutthaya',
        'dateAdded': '15 Nov 2022',
        'image': 'https://images.unsplash.com/photo-1528181304800-259b08848526?q=80&w=2670&auto=format&fit=crop',
        'isMarked': True,
        'category': 'History',
        'description': 'Ruins of the old capital with stone Buddha statues.',
    },
    {
        'id': '5',
        'name': 'Wat Rong Khun',
        'location': 'Chiang Rai',
        'dateAdded': '2 Sep 2022',
        'image': 'https://images.unsplash.com/photo-1512343879784-a960bf40e7f2?q=80&w=2592&auto=format&fit=crop',
        'isMarked': True,
        'category': 'Temple',
        'description': 'The White Temple, a contemporary art exhibit.',
    },
    {
        'id': '6',
        'name': 'Floating Market',
        'location': 'Ratchaburi',
        'dateAdded': '14 Aug 2022',
        'image': 'https://images.unsplash.com/photo-1598970434795-0c54fe7c0648?q=80&w=2670&auto=format&fit=crop',
        'isMarked': True,
        'category': 'Market',
        'description': 'Traditional boats selling goods on the canal.',
    },
    {
        'id': '7',
        'name': 'Pattaya Beach',
        'location': 'Chon Buri',
        'dateAdded': '20 Jul 2022',
        'image': 'https://images.unsplash.com/photo-1595246140625-573b715d1128?q=80&w=2536&auto=format&fit=crop',
        'isMarked': True,
        'category': 'Beach',
        'description': 'Beach city known for nightlife and watersports.',
    },
    {
        'id': '8',
        'name': 'Wat Phra That Doi Suthep',
        'location': 'Chiang Mai',
        'dateAdded': '12 Oct 2023',
        'image': 'https://images.unsplash.com/photo-1599553761783-c743825838c3?q=80&w=2574&auto=format&fit=crop',
        'isMarked': True,
        'category': 'Temple',
        'description': 'Golden stupa above the city, reached by a long stair climb.',
    },
    {
        'id': '9',
        'name': 'Patong Beach Sunset',
        'location': 'Phuket',
        'dateAdded': '10 Oct 2023',
        'image': 'https://images.unsplash.com/photo-1536098561742-ca998e48cbcc?q=80&w=2000&auto=format&fit=crop',
        'isMarked': True,
        'category': 'Beach',
        'description': 'Sunset over the Andaman Sea.',
    },
    {
        'id': '10',
        'name': 'Khao Yai National Park',
        'location': 'Nakhon Ratchasima',
        'dateAdded': '22 Aug 2023',
        'image': 'https://images.unsplash.com/photo-1596422846543-75c6fc197f07?q=80&w=2664&auto=format&fit=crop',
        'isMarked': True,
        'category': 'Nature',
        'description': 'Wild elephants crossing the park road.',
    },
]
